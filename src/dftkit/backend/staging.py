"""
Memory planning for staged DFT passes.

A staged transform keeps the full per-bin accumulator resident for the whole
call and streams the input through in contiguous chunks. The planner picks
the largest chunk that fits next to the accumulator in the available device
memory:

    chunk = (budget - num * ACCUMULATOR_BYTES - workspace) // SAMPLE_BYTES

capped at ``num`` and at any caller-forced chunk size.
"""

import logging
import operator
from collections.abc import Iterator
from dataclasses import dataclass

from .base import ACCUMULATOR_BYTES, SAMPLE_BYTES, DeviceOutOfMemoryError

logger = logging.getLogger(__name__)


def single_pass_bytes(num: int) -> int:
    """Device bytes needed to transform ``num`` samples in one pass."""
    return num * (SAMPLE_BYTES + ACCUMULATOR_BYTES)


@dataclass(frozen=True)
class StagingPlan:
    """Chunk layout for one staged transform."""

    num: int
    chunk_size: int
    budget: int | None = None

    @property
    def num_chunks(self) -> int:
        if self.num == 0:
            return 0
        return -(-self.num // self.chunk_size)

    @property
    def accumulator_bytes(self) -> int:
        return self.num * ACCUMULATOR_BYTES

    @property
    def chunk_bytes(self) -> int:
        return self.chunk_size * SAMPLE_BYTES

    @property
    def peak_bytes(self) -> int:
        """Largest device footprint reached while executing the plan."""
        return self.accumulator_bytes + self.chunk_bytes

    def chunks(self) -> Iterator[tuple[int, int]]:
        """Yield (start, stop) input ranges in ascending order."""
        for start in range(0, self.num, max(1, self.chunk_size)):
            yield start, min(start + self.chunk_size, self.num)


def _as_chunk_size(chunk_size) -> int:
    """Coerce a caller chunk size to a positive int or raise ValueError."""
    if isinstance(chunk_size, bool):
        raise ValueError(f"chunk_size must be an integer, got {chunk_size!r}")
    try:
        chunk_size = operator.index(chunk_size)
    except TypeError:
        raise ValueError(f"chunk_size must be an integer, got {type(chunk_size).__name__}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    return chunk_size


def plan_staging(
    num: int,
    budget: int | None,
    chunk_size: int | None = None,
    workspace_bytes: int = 0,
) -> StagingPlan:
    """
    Choose a chunk size for a staged transform.

    Args:
        num: Sequence length
        budget: Device bytes available for this call (None = unbounded)
        chunk_size: Optional upper bound on the chunk size
        workspace_bytes: Extra device bytes to keep free

    Returns:
        StagingPlan whose chunks partition [0, num)

    Raises:
        ValueError: on negative sizes or a chunk_size that is not an integer >= 1
        DeviceOutOfMemoryError: if not even one sample fits beside the accumulator
    """
    if num < 0:
        raise ValueError(f"num must be non-negative, got {num}")
    if chunk_size is not None:
        chunk_size = _as_chunk_size(chunk_size)
    if workspace_bytes < 0:
        raise ValueError(f"workspace_bytes must be non-negative, got {workspace_bytes}")

    if num == 0:
        return StagingPlan(num=0, chunk_size=0, budget=budget)

    if budget is None:
        viable = num
    else:
        accumulator_bytes = num * ACCUMULATOR_BYTES
        viable = (budget - accumulator_bytes - workspace_bytes) // SAMPLE_BYTES
        if viable < 1:
            raise DeviceOutOfMemoryError(
                accumulator_bytes + workspace_bytes + SAMPLE_BYTES,
                0,
                budget,
                "staged accumulator plus one sample",
            )

    size = min(viable, num)
    if chunk_size is not None:
        size = min(size, chunk_size)

    plan = StagingPlan(num=num, chunk_size=size, budget=budget)
    logger.debug(
        "Staging %d samples in %d chunk(s) of %d (peak %d bytes, budget %s)",
        num,
        plan.num_chunks,
        size,
        plan.peak_bytes,
        budget,
    )
    return plan


__all__ = ["StagingPlan", "plan_staging", "single_pass_bytes"]
