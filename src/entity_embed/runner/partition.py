"""
Deterministic partitioning of the corpus into contiguous worker shards.
"""

from typing import List

from ..core.models import ShardRange


def compute_shards(count: int, num_shards: int) -> List[ShardRange]:
    """
    Split ``count`` line positions into ``num_shards`` contiguous ranges.

    Worker ``r`` owns ``[(count // T) * r, (count // T) * (r + 1))``; the last
    worker is open-ended so it absorbs the division remainder and anything
    appended to the corpus after counting.

    Args:
        count: Total number of corpus lines
        num_shards: Worker count T

    Returns:
        One ShardRange per rank, in rank order
    """
    if num_shards < 1:
        raise ValueError(f"num_shards must be >= 1, got {num_shards}")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    step = count // num_shards
    shards = []
    for rank in range(num_shards):
        start = step * rank
        end = None if rank == num_shards - 1 else step * (rank + 1)
        shards.append(ShardRange(rank=rank, num_shards=num_shards, start=start, end=end))
    return shards
