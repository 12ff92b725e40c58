"""
Budgeted device memory allocator.

Every device buffer the engines create is accounted here before the device
array exists. The allocator refuses any request that would push the bytes in
use past ``max_memory``, which is how the single-pass engine detects inputs
that do not fit and how the staged engine proves its footprint stays bounded.

``max_memory=None`` means the budget is unknown (host memory, or a device
that does not report free memory); requests are then only tracked.
"""

import logging
import threading

from .base import DeviceOutOfMemoryError

logger = logging.getLogger(__name__)


class DeviceAllocator:
    """Thread-safe byte ledger with a hard ceiling."""

    def __init__(self, max_memory: int | None = None):
        """Initialize the instance."""

        if max_memory is not None:
            max_memory = int(max_memory)
            if max_memory < 0:
                raise ValueError(f"max_memory must be non-negative, got {max_memory}")
        self.max_memory = max_memory
        self._in_use = 0
        self._lock = threading.Lock()
        self._stats = {
            "allocations": 0,
            "releases": 0,
            "rejected": 0,
            "peak_bytes": 0,
            "total_allocated_bytes": 0,
        }

    @property
    def in_use(self) -> int:
        """Bytes currently reserved."""
        with self._lock:
            return self._in_use

    def available(self) -> int | None:
        """Bytes that can still be reserved, or None when unbounded."""
        with self._lock:
            if self.max_memory is None:
                return None
            return max(0, self.max_memory - self._in_use)

    def reserve(self, nbytes: int, label: str = ""):
        """
        Reserve ``nbytes`` against the budget.

        Args:
            nbytes: Size of the allocation in bytes
            label: Buffer name used in log and error messages

        Raises:
            DeviceOutOfMemoryError: if the reservation would exceed the budget
        """
        nbytes = int(nbytes)
        with self._lock:
            if self.max_memory is not None and self._in_use + nbytes > self.max_memory:
                self._stats["rejected"] += 1
                in_use = self._in_use
                logger.debug(
                    "Rejected %s: %d bytes requested, %d in use, budget %d",
                    label or "allocation",
                    nbytes,
                    in_use,
                    self.max_memory,
                )
                raise DeviceOutOfMemoryError(nbytes, in_use, self.max_memory, label)

            self._in_use += nbytes
            self._stats["allocations"] += 1
            self._stats["total_allocated_bytes"] += nbytes
            if self._in_use > self._stats["peak_bytes"]:
                self._stats["peak_bytes"] = self._in_use

    def free(self, nbytes: int, label: str = ""):
        """Return ``nbytes`` to the budget."""
        with self._lock:
            self._in_use -= int(nbytes)
            self._stats["releases"] += 1
            if self._in_use < 0:
                logger.warning("Allocator underflow after releasing %s", label or "buffer")
                self._in_use = 0

    def reset_peak(self):
        """Restart peak tracking from the current usage."""
        with self._lock:
            self._stats["peak_bytes"] = self._in_use

    def get_stats(self) -> dict:
        """Snapshot of allocation counters."""

        with self._lock:
            stats = dict(self._stats)
            stats["bytes_in_use"] = self._in_use
            stats["max_memory"] = self.max_memory
            return stats

    def __repr__(self):
        """Return a debug representation."""

        stats = self.get_stats()
        budget = "unbounded" if self.max_memory is None else f"{self.max_memory // 1024}KB"
        return (
            f"DeviceAllocator(in_use={stats['bytes_in_use'] // 1024}KB, "
            f"peak={stats['peak_bytes'] // 1024}KB, budget={budget})"
        )
