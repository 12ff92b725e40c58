"""
dftkit - direct Discrete Fourier Transform on CUDA and parallel CPU.

Three interchangeable engines evaluate the O(n^2) DFT sum:
- calculate_dft: sequential reference
- calculate_dft_parallel: one worker per frequency bin, whole input on device
- calculate_dft_staged: same kernel, input streamed through bounded device memory

Submodules:
- functional: function-style API
- backend: device cores, allocator, kernels and engines
- utils: device selection and validation
"""

import dftkit.functional as functional
import dftkit.utils as utils
from dftkit.backend import CUDA_AVAILABLE, NUMBA_AVAILABLE, DeviceOutOfMemoryError
from dftkit.backend.compute import DFTCompute
from dftkit.functional import (
    calculate_dft,
    calculate_dft_parallel,
    calculate_dft_staged,
    dft_magnitude,
    dft_normalize,
    dft_power_spectrum,
    idft,
    idft_parallel,
    idft_staged,
)
from dftkit.utils.device import get_device, set_device

# Main API exports
Compute = DFTCompute

__all__ = [
    "CUDA_AVAILABLE",
    "NUMBA_AVAILABLE",
    "DeviceOutOfMemoryError",
    "DFTCompute",
    "Compute",
    "calculate_dft",
    "calculate_dft_parallel",
    "calculate_dft_staged",
    "idft",
    "idft_parallel",
    "idft_staged",
    "dft_magnitude",
    "dft_power_spectrum",
    "dft_normalize",
    "get_device",
    "set_device",
    # Submodules
    "functional",
    "utils",
]

__version__ = "0.1.0"
