"""
DFT kernels.

One accumulation routine, ``_accumulate_bin``, is the only place the DFT sum
is written down. It is compiled for the host with numba ``jit`` and for CUDA
as a device function, so every engine shares the exact arithmetic:

    X[k] = sum_n x[n] * exp(sign * 2*pi*i * k*n / num)

Performance hierarchy:
1. CUDA kernel, one thread per frequency bin
2. Numba parallel JIT (prange over bins)
3. Pure Python loops when numba is not installed
"""

import math

import numpy as np

from .base import CUDA_AVAILABLE

try:
    from numba import jit, prange
except ImportError:

    def jit(*args, **kwargs):
        """Provide a no-op replacement for numba.jit."""

        def decorator(func):
            """Return the original function unchanged."""
            return func

        if len(args) == 1 and callable(args[0]):
            return args[0]
        return decorator

    prange = range

if CUDA_AVAILABLE:
    from numba import cuda

TWO_PI = 2.0 * math.pi


def _accumulate_bin(in_re, in_im, offset, start, stop, k, num, sign, acc_re, acc_im):
    """
    Continue the running sum of bin ``k`` over input indices [start, stop).

    ``in_re``/``in_im`` hold the staged slice whose first element is global
    index ``offset``. ``acc_re``/``acc_im`` are the sum carried in from
    earlier indices; resuming it (rather than adding a fresh partial) keeps
    the ascending-n summation order independent of how the input is chunked.

    The twiddle angle is built from (k*n) mod num so it stays in [0, 2*pi)
    for any sequence length.
    """
    bin_index = np.int64(k)
    for n in range(start, stop):
        m = (bin_index * n) % num
        angle = sign * TWO_PI * m / num
        c = math.cos(angle)
        s = math.sin(angle)
        x_re = float(in_re[n - offset])
        x_im = float(in_im[n - offset])
        acc_re += x_re * c - x_im * s
        acc_im += x_re * s + x_im * c
    return acc_re, acc_im


# ============================================================================
# Host kernels
# ============================================================================

_accumulate_bin_host = jit(nopython=True)(_accumulate_bin)


# No fastmath: reassociating the inner sum would break reproducibility
# between the reference and parallel paths.
@jit(nopython=True, cache=True)
def dft_reference_host(in_re, in_im, num, sign, out_re, out_im):
    """Sequential DFT: ascending k, ascending n."""
    for k in range(num):
        re, im = _accumulate_bin_host(in_re, in_im, 0, 0, num, k, num, sign, 0.0, 0.0)
        out_re[k] = re
        out_im[k] = im


@jit(nopython=True, parallel=True, cache=True)
def dft_pass_host(in_re, in_im, offset, start, stop, num, sign, acc_re, acc_im):
    """One accumulation pass over [start, stop), bins spread across threads."""
    for k in prange(num):
        re, im = _accumulate_bin_host(
            in_re, in_im, offset, start, stop, k, num, sign, acc_re[k], acc_im[k]
        )
        acc_re[k] = re
        acc_im[k] = im


# ============================================================================
# CUDA kernels
# ============================================================================

if CUDA_AVAILABLE:

    _accumulate_bin_device = cuda.jit(device=True)(_accumulate_bin)

    @cuda.jit
    def dft_pass_cuda(in_re, in_im, offset, start, stop, num, sign, acc_re, acc_im):
        """
        One accumulation pass, one thread per output bin.

        Thread k reads the whole staged slice and owns acc[k] exclusively,
        so no synchronization between threads is needed.
        """
        k = cuda.grid(1)
        if k < num:
            re, im = _accumulate_bin_device(
                in_re, in_im, offset, start, stop, k, num, sign, acc_re[k], acc_im[k]
            )
            acc_re[k] = re
            acc_im[k] = im

else:
    dft_pass_cuda = None


__all__ = [
    "TWO_PI",
    "dft_reference_host",
    "dft_pass_host",
    "dft_pass_cuda",
]
