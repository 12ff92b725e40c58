"""
Argument checking shared by every DFT engine.
"""

import operator

import numpy as np

SAMPLE_COMPLEX_DTYPE = np.complex64


def prepare_buffers(input, output=None, num=None) -> tuple[np.ndarray, np.ndarray, int]:
    """
    Validate and normalize the (input, output, num) triple of a DFT call.

    Args:
        input: 1-D array-like of real or complex samples
        output: Optional caller-allocated complex64 array of length num
        num: Optional explicit sample count; must equal len(input)

    Returns:
        (samples, output, num) where samples is a complex64 view or copy of
        input and output is the array the result will be written into

    Raises:
        ValueError: if the buffers or count are inconsistent
    """
    samples = np.asarray(input)
    if samples.dtype.kind not in "biufc":
        raise ValueError(f"input must be numeric, got dtype {samples.dtype}")
    if samples.ndim != 1:
        raise ValueError(f"input must be 1-D, got shape {samples.shape}")
    samples = samples.astype(SAMPLE_COMPLEX_DTYPE, copy=False)

    if num is None:
        num = samples.shape[0]
    else:
        try:
            num = operator.index(num)
        except TypeError:
            raise ValueError(f"num must be an integer, got {type(num).__name__}")
        if num < 0:
            raise ValueError(f"num must be non-negative, got {num}")
        if num != samples.shape[0]:
            raise ValueError(f"num={num} does not match input length {samples.shape[0]}")

    if output is None:
        output = np.zeros(num, dtype=SAMPLE_COMPLEX_DTYPE)
    else:
        check_output(output, num)

    return samples, output, num


def check_output(output, num: int):
    """Raise ValueError unless ``output`` can receive a length-``num`` result in place."""
    if not isinstance(output, np.ndarray):
        raise ValueError(f"output must be a numpy array, got {type(output).__name__}")
    if output.dtype != SAMPLE_COMPLEX_DTYPE:
        raise ValueError(f"output must have dtype complex64, got {output.dtype}")
    if output.shape != (num,):
        raise ValueError(f"output must have shape ({num},), got {output.shape}")
    if not output.flags.writeable:
        raise ValueError("output must be writeable")
    if not output.flags.c_contiguous:
        raise ValueError("output must be C-contiguous")


def split_lanes(samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Split complex samples into contiguous float32 real and imaginary lanes."""
    real = np.ascontiguousarray(samples.real, dtype=np.float32)
    imag = np.ascontiguousarray(samples.imag, dtype=np.float32)
    return real, imag


def write_output(
    output: np.ndarray, real: np.ndarray, imag: np.ndarray, scale: float = 1.0
) -> np.ndarray:
    """Store accumulated lanes into ``output`` (rounded to complex64) and return it."""
    if scale != 1.0:
        real = real * scale
        imag = imag * scale
    output.real[:] = real
    output.imag[:] = imag
    return output


__all__ = ["SAMPLE_COMPLEX_DTYPE", "prepare_buffers", "check_output", "split_lanes", "write_output"]
