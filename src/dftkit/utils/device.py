"""
Device Management Utilities
"""

import logging
import os

logger = logging.getLogger(__name__)

DEVICES = ("auto", "cpu", "cuda")

_current_device: str | None = None


def _normalize(device: str) -> str:
    device = str(device).lower()
    if device not in DEVICES:
        raise ValueError(f"Unknown device: {device}. Must be 'auto', 'cpu', or 'cuda'")
    return device


def get_device() -> str:
    """
    Get current device preference.

    Returns:
        'auto', 'cpu' or 'cuda'. Defaults to DFTKIT_DEVICE, then 'auto'.
    """
    if _current_device is not None:
        return _current_device
    return _normalize(os.getenv("DFTKIT_DEVICE", "auto"))


def set_device(device: str | None) -> None:
    """
    Set current device preference.

    Args:
        device: 'auto', 'cpu' or 'cuda'; None restores the environment default
    """
    global _current_device
    _current_device = None if device is None else _normalize(device)


def resolve_device(device: str | None = None) -> str:
    """
    Resolve a device preference to a concrete backend.

    Args:
        device: 'auto', 'cpu', 'cuda' or None for the current preference

    Returns:
        'cpu' or 'cuda'

    Raises:
        RuntimeError: if 'cuda' is requested but not available
    """
    from ..backend.base import CUDA_AVAILABLE

    device = get_device() if device is None else _normalize(device)
    if device == "auto":
        if not CUDA_AVAILABLE:
            logger.debug("No CUDA device found, using cpu backend")
            return "cpu"
        return "cuda"
    if device == "cuda" and not CUDA_AVAILABLE:
        raise RuntimeError("CUDA device requested but numba CUDA is not available")
    return device


def device_count() -> int:
    """
    Get number of available devices for the current preference.

    Returns:
        Number of devices
    """
    if resolve_device() == "cuda":
        from numba import cuda

        return len(cuda.list_devices())
    return 1


__all__ = ["DEVICES", "get_device", "set_device", "resolve_device", "device_count"]
