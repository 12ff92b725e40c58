"""Functional DFT helpers backed by dftkit compute engines."""

import numpy as np

from ..backend.compute import DFTCompute


def _get_backend(device: str | None = None, memory_budget: int | None = None) -> DFTCompute:
    """Get compute backend"""
    return DFTCompute(device=device, memory_budget=memory_budget)


def calculate_dft(input, output=None, num=None, *, inverse: bool = False) -> np.ndarray:
    """
    Reference DFT, computed sequentially on the host.

    Args:
        input: 1-D sequence of num samples (real or complex)
        output: Optional complex64 buffer of length num, filled in place
        num: Optional explicit sample count; must equal len(input)
        inverse: Compute the inverse transform

    Returns:
        complex64 array of length num
    """
    with _get_backend(device="cpu") as backend:
        return backend.dft(input, output, num, inverse=inverse)


def calculate_dft_parallel(
    input,
    output=None,
    num=None,
    *,
    inverse: bool = False,
    device: str | None = None,
    memory_budget: int | None = None,
) -> np.ndarray:
    """
    Parallel DFT with the whole sequence resident on the device.

    Args:
        input: 1-D sequence of num samples (real or complex)
        output: Optional complex64 buffer of length num, filled in place
        num: Optional explicit sample count; must equal len(input)
        inverse: Compute the inverse transform
        device: 'auto', 'cpu' or 'cuda'
        memory_budget: Device memory budget in bytes

    Returns:
        complex64 array of length num

    Raises:
        DeviceOutOfMemoryError: if the sequence does not fit on the device
    """
    with _get_backend(device, memory_budget) as backend:
        return backend.dft_parallel(input, output, num, inverse=inverse)


def calculate_dft_staged(
    input,
    output=None,
    num=None,
    *,
    inverse: bool = False,
    device: str | None = None,
    memory_budget: int | None = None,
    chunk_size: int | None = None,
) -> np.ndarray:
    """
    Parallel DFT that streams the input through bounded device memory.

    Args:
        input: 1-D sequence of num samples (real or complex)
        output: Optional complex64 buffer of length num, filled in place
        num: Optional explicit sample count; must equal len(input)
        inverse: Compute the inverse transform
        device: 'auto', 'cpu' or 'cuda'
        memory_budget: Device memory budget in bytes
        chunk_size: Optional upper bound on samples per chunk

    Returns:
        complex64 array of length num
    """
    with _get_backend(device, memory_budget) as backend:
        return backend.dft_staged(input, output, num, inverse=inverse, chunk_size=chunk_size)


def idft(input, output=None, num=None) -> np.ndarray:
    """Inverse reference DFT (1/num scaling)."""
    return calculate_dft(input, output, num, inverse=True)


def idft_parallel(input, output=None, num=None, **kwargs) -> np.ndarray:
    """Inverse single-pass parallel DFT."""
    return calculate_dft_parallel(input, output, num, inverse=True, **kwargs)


def idft_staged(input, output=None, num=None, **kwargs) -> np.ndarray:
    """Inverse staged parallel DFT."""
    return calculate_dft_staged(input, output, num, inverse=True, **kwargs)


def dft_magnitude(spectrum: np.ndarray) -> np.ndarray:
    """
    DFT magnitude spectrum

    Args:
        spectrum: DFT output (complex)

    Returns:
        Magnitude spectrum (float32)
    """
    spectrum = np.asarray(spectrum)
    return np.sqrt(spectrum.real**2 + spectrum.imag**2).astype(np.float32)


def dft_power_spectrum(spectrum: np.ndarray) -> np.ndarray:
    """
    DFT power spectrum

    Args:
        spectrum: DFT output (complex)

    Returns:
        Power spectrum (float32)
    """
    magnitude = dft_magnitude(spectrum)
    return (magnitude**2).astype(np.float32)


def dft_normalize(spectrum: np.ndarray) -> np.ndarray:
    """
    Orthonormal scaling of a DFT output by 1/sqrt(N).

    Args:
        spectrum: DFT output (complex), length N

    Returns:
        Scaled spectrum (complex64)
    """
    spectrum = np.asarray(spectrum)
    n = spectrum.shape[-1]
    if n == 0:
        return spectrum.astype(np.complex64)
    return (spectrum * (1.0 / np.sqrt(n))).astype(np.complex64)
