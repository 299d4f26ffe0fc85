"""
Runner module for training embeddings across corpus shards.
"""

from .partition import compute_shards
from .shard_runner import ShardRunner, RunnerConfig, worker_rng

__all__ = ["compute_shards", "ShardRunner", "RunnerConfig", "worker_rng"]
