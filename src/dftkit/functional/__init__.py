"""
Functional API
"""

from .dft import (
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

__all__ = [
    "calculate_dft",
    "calculate_dft_parallel",
    "calculate_dft_staged",
    "idft",
    "idft_parallel",
    "idft_staged",
    "dft_magnitude",
    "dft_power_spectrum",
    "dft_normalize",
]
