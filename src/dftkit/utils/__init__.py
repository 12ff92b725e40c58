"""
Utilities Module

Device selection and buffer validation helpers.
"""

from .device import device_count, get_device, resolve_device, set_device
from .validation import check_output, prepare_buffers, split_lanes, write_output

__all__ = [
    "get_device",
    "set_device",
    "resolve_device",
    "device_count",
    "prepare_buffers",
    "check_output",
    "split_lanes",
    "write_output",
]
