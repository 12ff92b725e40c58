"""
Device cores: allocation, transfers and kernel dispatch.

A core owns one DeviceAllocator and knows how to move arrays between the
host and its memory space. Engines talk to a core only through
``allocate_zeros``, ``upload``, ``download``, ``launch_dft_pass`` and
``synchronize``, so the same staging logic drives the CUDA device and the
host fallback.
"""

import logging
import math
import os

import numpy as np

from . import kernels
from .allocator import DeviceAllocator
from .base import CUDA_AVAILABLE, DeviceBuffer, DeviceOutOfMemoryError

if CUDA_AVAILABLE:
    from numba import cuda

logger = logging.getLogger(__name__)

_DEBUG_TRANSFER = os.getenv("DFTKIT_DEBUG_TRANSFER", "0") == "1"


def _budget_from_env() -> int | None:
    """Read DFTKIT_DEVICE_MEMORY (bytes). Unset or empty means no override."""
    raw = os.getenv("DFTKIT_DEVICE_MEMORY", "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"DFTKIT_DEVICE_MEMORY must be an integer byte count, got {raw!r}")
    if value < 0:
        raise ValueError(f"DFTKIT_DEVICE_MEMORY must be non-negative, got {value}")
    return value


class DeviceCore:
    """Common allocation and transfer bookkeeping for a compute device."""

    name = "base"

    def __init__(self, memory_budget: int | None = None):
        """
        Args:
            memory_budget: Device bytes the engines may use. Falls back to
                DFTKIT_DEVICE_MEMORY, then to what the device reports.
        """
        if memory_budget is None:
            memory_budget = _budget_from_env()
        if memory_budget is None:
            memory_budget = self._query_device_memory()
        self.allocator = DeviceAllocator(memory_budget)
        self._stats = {
            "uploads": 0,
            "downloads": 0,
            "bytes_uploaded": 0,
            "bytes_downloaded": 0,
            "launches": 0,
        }

    @property
    def memory_budget(self) -> int | None:
        return self.allocator.max_memory

    def _query_device_memory(self) -> int | None:
        return None

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------
    def _to_device(self, host: np.ndarray):
        raise NotImplementedError

    def _device_zeros(self, count: int, dtype):
        raise NotImplementedError

    def _to_host(self, handle) -> np.ndarray:
        raise NotImplementedError

    def launch_dft_pass(self, in_re, in_im, offset, start, stop, num, sign, acc_re, acc_im):
        """Run one accumulation pass of ``num`` bin workers over [start, stop)."""
        raise NotImplementedError

    def synchronize(self):
        """Block until all queued device work has finished."""

    # ------------------------------------------------------------------
    # Buffers and transfers
    # ------------------------------------------------------------------
    def _wrap(self, label: str, count: int, dtype, create) -> DeviceBuffer:
        nbytes = int(count) * np.dtype(dtype).itemsize
        self.allocator.reserve(nbytes, label)
        try:
            handle = create()
        except BaseException as exc:
            self.allocator.free(nbytes, label)
            if self._is_out_of_memory(exc):
                raise DeviceOutOfMemoryError(
                    nbytes, self.allocator.in_use, self.memory_budget, label
                ) from exc
            raise
        return DeviceBuffer(handle, nbytes, count, dtype, label, self.allocator)

    def _is_out_of_memory(self, exc: BaseException) -> bool:
        """True if a backend allocation error means the device is exhausted."""
        return isinstance(exc, MemoryError) and not isinstance(exc, DeviceOutOfMemoryError)

    def allocate_zeros(self, count: int, dtype, label: str) -> DeviceBuffer:
        """Allocate a zero-initialized device buffer."""
        return self._wrap(label, count, dtype, lambda: self._device_zeros(count, dtype))

    def upload(self, host: np.ndarray, label: str) -> DeviceBuffer:
        """Copy a host array into a new device buffer (synchronous)."""
        arr = np.ascontiguousarray(host)
        buf = self._wrap(label, arr.size, arr.dtype, lambda: self._to_device(arr))
        self._stats["uploads"] += 1
        self._stats["bytes_uploaded"] += buf.nbytes
        if _DEBUG_TRANSFER:
            logger.debug("upload %s: %d bytes", label, buf.nbytes)
        return buf

    def download(self, buf: DeviceBuffer) -> np.ndarray:
        """Copy a device buffer back into a new host array (synchronous)."""
        if not buf.in_use:
            raise RuntimeError(f"Cannot download released buffer {buf.label!r}")
        host = self._to_host(buf.handle)
        self._stats["downloads"] += 1
        self._stats["bytes_downloaded"] += buf.nbytes
        if _DEBUG_TRANSFER:
            logger.debug("download %s: %d bytes", buf.label, buf.nbytes)
        return host

    def get_stats(self) -> dict:
        """Transfer/launch counters merged with allocator statistics."""
        stats = dict(self._stats)
        stats["device"] = self.name
        stats.update(self.allocator.get_stats())
        return stats

    def cleanup(self):
        """Release device-side state held by the core."""

    def __repr__(self):
        return f"{type(self).__name__}({self.allocator!r})"


class HostCore(DeviceCore):
    """Host fallback: device memory is private numpy copies, bins run under prange."""

    name = "cpu"

    def _to_device(self, host: np.ndarray):
        return np.array(host, copy=True)

    def _device_zeros(self, count: int, dtype):
        return np.zeros(count, dtype=dtype)

    def _to_host(self, handle) -> np.ndarray:
        return np.array(handle, copy=True)

    def launch_dft_pass(self, in_re, in_im, offset, start, stop, num, sign, acc_re, acc_im):
        """Run one accumulation pass with the numba parallel host kernel."""
        kernels.dft_pass_host(
            in_re.handle,
            in_im.handle,
            offset,
            start,
            stop,
            num,
            sign,
            acc_re.handle,
            acc_im.handle,
        )
        self._stats["launches"] += 1


class CudaCore(DeviceCore):
    """CUDA device through numba."""

    name = "cuda"
    THREADS_PER_BLOCK = 256
    # Share of reported free memory the engines may claim.
    MEMORY_FRACTION = 0.9
    CUDA_ERROR_OUT_OF_MEMORY = 2

    def __init__(self, memory_budget: int | None = None):
        """Initialize the instance."""
        if not CUDA_AVAILABLE:
            raise RuntimeError("CUDA not available")
        super().__init__(memory_budget)
        logger.info("CUDA core ready (budget=%s bytes)", self.memory_budget)

    def _query_device_memory(self) -> int | None:
        try:
            free, _total = cuda.current_context().get_memory_info()
        except Exception as exc:
            logger.debug("Device memory query failed: %s", exc)
            return None
        # The simulator reports infinite memory.
        if not math.isfinite(free):
            return None
        return int(free * self.MEMORY_FRACTION)

    def _is_out_of_memory(self, exc: BaseException) -> bool:
        # numba reports driver failures as CudaAPIError carrying the CUresult code.
        code = getattr(exc, "code", None) if isinstance(exc, Exception) else None
        if code == self.CUDA_ERROR_OUT_OF_MEMORY:
            return True
        return super()._is_out_of_memory(exc)

    def _to_device(self, host: np.ndarray):
        return cuda.to_device(host)

    def _device_zeros(self, count: int, dtype):
        return cuda.to_device(np.zeros(count, dtype=dtype))

    def _to_host(self, handle) -> np.ndarray:
        return handle.copy_to_host()

    def launch_dft_pass(self, in_re, in_im, offset, start, stop, num, sign, acc_re, acc_im):
        """Launch the per-bin CUDA kernel, one thread per output bin."""
        threads = min(self.THREADS_PER_BLOCK, num)
        blocks = (num + threads - 1) // threads
        kernels.dft_pass_cuda[blocks, threads](
            in_re.handle,
            in_im.handle,
            offset,
            start,
            stop,
            num,
            sign,
            acc_re.handle,
            acc_im.handle,
        )
        self._stats["launches"] += 1

    def synchronize(self):
        cuda.synchronize()


def create_core(device: str | None = None, memory_budget: int | None = None) -> DeviceCore:
    """
    Build the core for a device name.

    Args:
        device: 'cpu', 'cuda' or 'auto'. None uses the process default
            (see dftkit.utils.device).
        memory_budget: Optional device memory budget in bytes

    Returns:
        HostCore or CudaCore
    """
    from ..utils.device import resolve_device

    resolved = resolve_device(device)
    if resolved == "cuda":
        return CudaCore(memory_budget)
    return HostCore(memory_budget)


__all__ = ["DeviceCore", "HostCore", "CudaCore", "create_core"]
