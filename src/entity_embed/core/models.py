"""
Core data models for the entity embedding trainer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np


class ShardStatus(str, Enum):
    """Status of a single worker shard."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    """Overall status of a training run."""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class EntityRecord:
    """
    One line of the description corpus.

    Attributes:
        entity_id: Entity identifier (e.g. a Wikidata QID)
        tokens: Whitespace-separated description tokens, in order
    """
    entity_id: str
    tokens: Sequence[str]


@dataclass
class TrainingExamples:
    """
    Labeled feature set for one entity.

    Rows of ``features`` are word vectors; positives (label 1) come first,
    followed by the sampled negatives (label 0).
    """
    features: np.ndarray
    labels: np.ndarray
    num_positive: int = 0

    @property
    def num_negative(self) -> int:
        return len(self.labels) - self.num_positive

    def is_empty(self) -> bool:
        return len(self.labels) == 0

    def __len__(self) -> int:
        return len(self.labels)


@dataclass
class FitResult:
    """
    Outcome of fitting one entity's logistic regression.

    Attributes:
        weights: Fitted weight vector (float32), index 0 is the bias term
        iterations: Number of gradient steps taken
        loss: Regularized negative log-likelihood after the last step
        converged: True if the tolerance was reached before the iteration cap
        learning_rate: Step size in effect at the end (halved on every loss increase)
    """
    weights: np.ndarray
    iterations: int
    loss: float
    converged: bool
    learning_rate: float = 1.0


@dataclass(frozen=True)
class ShardRange:
    """
    Contiguous slice of corpus line positions owned by one worker.

    ``end`` is exclusive; ``None`` means the shard runs to the end of the
    stream (only the last shard).
    """
    rank: int
    num_shards: int
    start: int
    end: Optional[int]

    @property
    def is_last(self) -> bool:
        return self.rank == self.num_shards - 1

    def __len__(self) -> int:
        if self.end is None:
            raise TypeError("open-ended shard has no fixed length")
        return self.end - self.start

    def contains(self, position: int) -> bool:
        if position < self.start:
            return False
        return self.end is None or position < self.end


@dataclass
class ShardResult:
    """Per-worker outcome for one shard."""
    rank: int
    output_path: str
    status: ShardStatus = ShardStatus.PENDING
    records_read: int = 0
    records_written: int = 0
    records_skipped: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


@dataclass
class RunMetrics:
    """Aggregate metrics for a training run."""
    run_id: str
    total_records: int
    dimension: int
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None
    status: RunStatus = RunStatus.RUNNING
    shards: Dict[int, ShardResult] = field(default_factory=dict)

    @property
    def records_written(self) -> int:
        return sum(s.records_written for s in self.shards.values())

    @property
    def records_skipped(self) -> int:
        return sum(s.records_skipped for s in self.shards.values())

    def failed_ranks(self) -> List[int]:
        return sorted(
            rank for rank, s in self.shards.items()
            if s.status == ShardStatus.FAILED
        )

    def to_dict(self) -> dict:
        """Summarize the run for logging."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "total_records": self.total_records,
            "dimension": self.dimension,
            "records_written": self.records_written,
            "records_skipped": self.records_skipped,
            "shards": {
                rank: s.status.value for rank, s in sorted(self.shards.items())
            },
        }
