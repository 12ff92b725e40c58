"""
DFT Operations

Direct O(n^2) discrete Fourier transform engines:
- reference: sequential host loop, the correctness oracle
- parallel: whole input resident on the device, one worker per bin
- staged: input streamed through the device in chunks while the per-bin
  accumulator stays resident, for inputs larger than device memory

All three share kernels._accumulate_bin, so they differ only in where the
data lives and how the n-range is split into passes.
"""

import logging

import numpy as np

from ..utils.validation import prepare_buffers, split_lanes, write_output
from . import kernels
from .base import ACCUMULATOR_DTYPE, BufferMixin, DeviceOutOfMemoryError
from .staging import plan_staging, single_pass_bytes

logger = logging.getLogger(__name__)


def _sign(inverse: bool) -> int:
    return 1 if inverse else -1


def _scale(num: int, inverse: bool) -> float:
    return 1.0 / num if inverse else 1.0


class DFTEngines(BufferMixin):
    """Reference, parallel and staged DFT over one device core."""

    def __init__(self, core):
        """Initialize with a DeviceCore."""
        self.core = core

    def reference(self, input, output=None, num=None, inverse: bool = False) -> np.ndarray:
        """
        Sequential DFT on the host.

        Bins are evaluated in increasing k, each summed over ascending n.
        Never touches the device.

        Args:
            input: 1-D sequence of num samples
            output: Optional complex64 buffer of length num, filled in place
            num: Optional explicit sample count
            inverse: Compute the inverse transform (scaled by 1/num)

        Returns:
            complex64 array of length num
        """
        samples, output, num = prepare_buffers(input, output, num)
        if num == 0:
            return output

        in_re, in_im = split_lanes(samples)
        out_re = np.empty(num, dtype=ACCUMULATOR_DTYPE)
        out_im = np.empty(num, dtype=ACCUMULATOR_DTYPE)
        kernels.dft_reference_host(in_re, in_im, num, _sign(inverse), out_re, out_im)
        return write_output(output, out_re, out_im, _scale(num, inverse))

    def parallel(self, input, output=None, num=None, inverse: bool = False) -> np.ndarray:
        """
        Single-pass DFT on the device.

        The whole input and the num-bin accumulator must fit in device memory
        at once; use ``staged`` otherwise.

        Args:
            input: 1-D sequence of num samples
            output: Optional complex64 buffer of length num, filled in place
            num: Optional explicit sample count
            inverse: Compute the inverse transform (scaled by 1/num)

        Returns:
            complex64 array of length num

        Raises:
            DeviceOutOfMemoryError: if input plus accumulator exceed the budget
        """
        samples, output, num = prepare_buffers(input, output, num)
        if num == 0:
            return output

        required = single_pass_bytes(num)
        available = self.core.allocator.available()
        if available is not None and required > available:
            raise DeviceOutOfMemoryError(
                required, self.core.allocator.in_use, self.core.memory_budget, "single-pass DFT"
            )

        in_re, in_im = split_lanes(samples)
        buffers = []
        try:
            buf_re, buf_im = self._upload_lanes(in_re, in_im, "input", buffers)
            acc_re = self._acquire_zeros(num, ACCUMULATOR_DTYPE, "accumulator.real")
            buffers.append(acc_re)
            acc_im = self._acquire_zeros(num, ACCUMULATOR_DTYPE, "accumulator.imag")
            buffers.append(acc_im)

            self.core.launch_dft_pass(buf_re, buf_im, 0, 0, num, num, _sign(inverse), acc_re, acc_im)
            self.core.synchronize()

            sum_re = self._download_buffer(acc_re)
            sum_im = self._download_buffer(acc_im)
        finally:
            self._release_buffers(buffers)

        return write_output(output, sum_re, sum_im, _scale(num, inverse))

    def staged(
        self,
        input,
        output=None,
        num=None,
        inverse: bool = False,
        chunk_size: int | None = None,
    ) -> np.ndarray:
        """
        Chunked DFT for inputs that do not fit in device memory.

        The accumulator is allocated once and stays resident; input chunks
        are uploaded, consumed by a num-worker pass, and released one at a
        time in ascending order.

        Args:
            input: 1-D sequence of num samples
            output: Optional complex64 buffer of length num, filled in place
            num: Optional explicit sample count
            inverse: Compute the inverse transform (scaled by 1/num)
            chunk_size: Optional upper bound on samples per chunk

        Returns:
            complex64 array of length num

        Raises:
            DeviceOutOfMemoryError: if the accumulator plus one sample do not fit
        """
        samples, output, num = prepare_buffers(input, output, num)
        plan = plan_staging(num, self.core.allocator.available(), chunk_size)
        if num == 0:
            return output

        in_re, in_im = split_lanes(samples)
        sign = _sign(inverse)
        accumulators = []
        try:
            acc_re = self._acquire_zeros(num, ACCUMULATOR_DTYPE, "accumulator.real")
            accumulators.append(acc_re)
            acc_im = self._acquire_zeros(num, ACCUMULATOR_DTYPE, "accumulator.imag")
            accumulators.append(acc_im)

            for index, (start, stop) in enumerate(plan.chunks()):
                chunk = []
                try:
                    chunk_re, chunk_im = self._upload_lanes(
                        in_re[start:stop], in_im[start:stop], f"chunk[{index}]", chunk
                    )
                    self.core.launch_dft_pass(
                        chunk_re, chunk_im, start, start, stop, num, sign, acc_re, acc_im
                    )
                    # The next pass reads acc[k]; this one must be committed first.
                    self.core.synchronize()
                finally:
                    self._release_buffers(chunk)

            sum_re = self._download_buffer(acc_re)
            sum_im = self._download_buffer(acc_im)
        finally:
            self._release_buffers(accumulators)

        return write_output(output, sum_re, sum_im, _scale(num, inverse))


__all__ = ["DFTEngines"]
