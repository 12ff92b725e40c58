"""
Base constants and utilities for the DFT compute backend.
"""

import numpy as np

try:
    import numba  # noqa: F401

    NUMBA_AVAILABLE = True
except ImportError:
    NUMBA_AVAILABLE = False

try:
    from numba import cuda

    CUDA_AVAILABLE = bool(cuda.is_available())
except ImportError:
    cuda = None
    CUDA_AVAILABLE = False

# Device-side byte sizes. Input samples travel as two float32 lanes, the
# per-bin accumulator is kept as two float64 lanes.
SAMPLE_DTYPE = np.float32
ACCUMULATOR_DTYPE = np.float64
SAMPLE_BYTES = 2 * np.dtype(SAMPLE_DTYPE).itemsize
ACCUMULATOR_BYTES = 2 * np.dtype(ACCUMULATOR_DTYPE).itemsize


class DeviceOutOfMemoryError(MemoryError):
    """Raised when a device allocation would exceed the memory budget."""

    def __init__(self, requested: int, in_use: int, budget: int | None, label: str = ""):
        self.requested = int(requested)
        self.in_use = int(in_use)
        self.budget = budget
        self.label = label
        what = f" for {label}" if label else ""
        super().__init__(
            f"Device out of memory{what}: requested {self.requested} bytes with "
            f"{self.in_use} bytes in use (budget {budget} bytes)"
        )


class DeviceBuffer:
    """A device-resident array accounted against a DeviceAllocator."""

    __slots__ = ("handle", "nbytes", "count", "dtype", "label", "in_use", "_allocator")

    def __init__(self, handle, nbytes: int, count: int, dtype, label: str, allocator):
        self.handle = handle
        self.nbytes = int(nbytes)
        self.count = int(count)
        self.dtype = np.dtype(dtype)
        self.label = label
        self.in_use = True
        self._allocator = allocator

    def release(self):
        """Drop the device array and return its bytes to the allocator."""
        if self.in_use:
            self.in_use = False
            self.handle = None
            self._allocator.free(self.nbytes, self.label)

    def __del__(self):
        if getattr(self, "in_use", False):
            self.release()

    def __repr__(self):
        return f"DeviceBuffer({self.label!r}, count={self.count}, dtype={self.dtype}, in_use={self.in_use})"


class BufferMixin:
    """Mixin providing device buffer management for engine modules.

    Subclasses must have ``self.core`` (a DeviceCore instance).
    """

    # ------------------------------------------------------------------
    # Buffer acquire / release
    # ------------------------------------------------------------------
    def _acquire_zeros(self, count: int, dtype, label: str) -> DeviceBuffer:
        """Allocate a zero-filled device buffer of ``count`` elements."""
        return self.core.allocate_zeros(count, dtype, label)

    def _release_buffer(self, buf):
        """Release a single buffer."""
        self._release_buffers([buf])

    def _release_buffers(self, buffers):
        """Release multiple buffers, skipping ones already released."""
        for buf in buffers:
            if buf is not None:
                buf.release()

    # ------------------------------------------------------------------
    # Upload / download helpers
    # ------------------------------------------------------------------
    def _upload_buffer(self, data: np.ndarray, label: str) -> DeviceBuffer:
        """Upload host data into a freshly allocated device buffer."""
        return self.core.upload(data, label)

    def _upload_lanes(self, real: np.ndarray, imag: np.ndarray, label: str, buffers: list):
        """Upload a real/imag lane pair.

        Each buffer is appended to ``buffers`` as soon as it exists so the
        caller's cleanup sees it even when the second upload fails.
        """
        buf_re = self._upload_buffer(real, f"{label}.real")
        buffers.append(buf_re)
        buf_im = self._upload_buffer(imag, f"{label}.imag")
        buffers.append(buf_im)
        return buf_re, buf_im

    def _download_buffer(self, buf: DeviceBuffer) -> np.ndarray:
        """Download a device buffer to a host array."""
        return self.core.download(buf)


__all__ = [
    "NUMBA_AVAILABLE",
    "CUDA_AVAILABLE",
    "SAMPLE_DTYPE",
    "ACCUMULATOR_DTYPE",
    "SAMPLE_BYTES",
    "ACCUMULATOR_BYTES",
    "DeviceOutOfMemoryError",
    "DeviceBuffer",
    "BufferMixin",
]
