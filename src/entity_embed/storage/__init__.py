"""
Storage for trained entity embeddings.
"""

from .shard_writer import (
    ShardWriter, shard_path, format_embedding, read_shard, read_header, merge_shards
)

__all__ = [
    "ShardWriter",
    "shard_path",
    "format_embedding",
    "read_shard",
    "read_header",
    "merge_shards",
]
