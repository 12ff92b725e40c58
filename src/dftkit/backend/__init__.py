"""
Compute backend for direct DFT evaluation.

Kernels run on a CUDA device through numba when one is available, and on the
host through numba's parallel JIT otherwise.
"""

from .allocator import DeviceAllocator
from .base import CUDA_AVAILABLE, NUMBA_AVAILABLE, DeviceBuffer, DeviceOutOfMemoryError
from .compute import DFTCompute
from .core import CudaCore, DeviceCore, HostCore, create_core
from .dft import DFTEngines
from .staging import StagingPlan, plan_staging, single_pass_bytes

__all__ = [
    "CUDA_AVAILABLE",
    "NUMBA_AVAILABLE",
    "DeviceAllocator",
    "DeviceBuffer",
    "DeviceOutOfMemoryError",
    "DFTCompute",
    "DFTEngines",
    "DeviceCore",
    "HostCore",
    "CudaCore",
    "create_core",
    "StagingPlan",
    "plan_staging",
    "single_pass_bytes",
]
