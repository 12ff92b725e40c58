"""
Pytest configuration and fixtures for dftkit tests
"""

import os

# Run CUDA kernels on numba's simulator unless the caller chose otherwise.
# Must be set before numba is imported.
os.environ.setdefault("NUMBA_ENABLE_CUDASIM", "1")

import numpy as np
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "gpu: marks tests that run the CUDA kernels (deselect with '-m \"not gpu\"')"
    )


try:
    from dftkit.backend.base import CUDA_AVAILABLE
except ImportError:
    CUDA_AVAILABLE = False


@pytest.fixture
def cpu_backend():
    """Fixture for the host-parallel backend with no memory budget"""
    from dftkit import DFTCompute

    backend = DFTCompute(device="cpu")
    yield backend
    backend.cleanup()


@pytest.fixture
def gpu_backend():
    """Fixture for the CUDA backend (skips if not available)"""
    if not CUDA_AVAILABLE:
        pytest.skip("CUDA not available")
    from dftkit import DFTCompute

    backend = DFTCompute(device="cuda")
    yield backend
    backend.cleanup()


@pytest.fixture
def make_signal():
    """Factory for reproducible complex64 test signals"""
    rng = np.random.default_rng(42)

    def _make(n: int) -> np.ndarray:
        re = rng.standard_normal(n)
        im = rng.standard_normal(n)
        return (re + 1j * im).astype(np.complex64)

    return _make


@pytest.fixture(autouse=True)
def _reset_device_preference():
    """Keep set_device() calls from leaking between tests"""
    yield
    from dftkit.utils.device import set_device

    set_device(None)
