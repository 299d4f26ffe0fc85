"""
Core abstractions and data models for the entity embedding trainer.
"""

from .models import (
    EntityRecord, TrainingExamples, FitResult, ShardRange,
    ShardResult, ShardStatus, RunMetrics, RunStatus
)
from .vector_store import VectorStore
from .exceptions import (
    EmbedError, EmbedConfigError, VectorStoreError, CorpusError, SamplingError
)

__all__ = [
    "EntityRecord",
    "TrainingExamples",
    "FitResult",
    "ShardRange",
    "ShardResult",
    "ShardStatus",
    "RunMetrics",
    "RunStatus",
    "VectorStore",
    "EmbedError",
    "EmbedConfigError",
    "VectorStoreError",
    "CorpusError",
    "SamplingError",
]
