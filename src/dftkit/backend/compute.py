"""
Main DFTCompute class that composes a device core with the DFT engines.
"""

import logging

from .core import create_core
from .dft import DFTEngines

logger = logging.getLogger(__name__)


class DFTCompute:
    """DFT backend bound to one device.

    Each instance owns its device core, so separate instances never share
    allocator state. Use as a context manager, or call ``cleanup()``, to
    release the core.
    """

    def __init__(self, device: str | None = None, memory_budget: int | None = None):
        """
        Args:
            device: 'auto', 'cpu' or 'cuda' (None = process default)
            memory_budget: Device bytes the engines may use (None = env or device query)
        """
        self.core = create_core(device, memory_budget)
        self.engines = DFTEngines(self.core)
        self.device = self.core.name
        logger.debug("DFTCompute on %s: %r", self.device, self.core)

    @property
    def memory_budget(self) -> int | None:
        return self.core.memory_budget

    def dft(self, input, output=None, num=None, inverse: bool = False):
        """Reference DFT (sequential, host only)."""
        return self.engines.reference(input, output, num, inverse=inverse)

    def dft_parallel(self, input, output=None, num=None, inverse: bool = False):
        """Single-pass parallel DFT on the device."""
        return self.engines.parallel(input, output, num, inverse=inverse)

    def dft_staged(self, input, output=None, num=None, inverse: bool = False, chunk_size=None):
        """Memory-staged parallel DFT on the device."""
        return self.engines.staged(input, output, num, inverse=inverse, chunk_size=chunk_size)

    def get_stats(self) -> dict:
        return self.core.get_stats()

    def cleanup(self):
        """Release device resources."""
        if getattr(self, "core", None) is not None:
            self.core.cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False

    def __repr__(self):
        return f"DFTCompute(device={self.device!r}, budget={self.memory_budget})"
