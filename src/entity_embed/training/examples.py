"""
Training example construction with negative sampling.

An entity's description words are the positive examples; the same number
(or a configured ``rho``) of words drawn at random from the vocabulary are
the negatives. Features are the word vectors themselves.
"""

import logging
from typing import Iterable, List, Set

import numpy as np

from ..core.exceptions import SamplingError
from ..core.models import TrainingExamples
from ..core.vector_store import VectorStore


logger = logging.getLogger(__name__)


def empty_examples(dimension: int) -> TrainingExamples:
    """Return an example set with no rows."""
    return TrainingExamples(
        features=np.empty((0, dimension), dtype=np.float32),
        labels=np.empty(0, dtype=np.int8),
        num_positive=0,
    )


def sample_negative_ids(
    rng: np.random.Generator,
    vocabulary_size: int,
    excluded: Set[int],
    count: int,
) -> List[int]:
    """
    Draw ``count`` ids uniformly from [0, vocabulary_size), rejecting excluded ids.

    Accepted ids may repeat.

    Raises:
        SamplingError: If every id is excluded and ``count`` > 0
    """
    if count <= 0:
        return []
    if len(excluded) >= vocabulary_size:
        raise SamplingError(
            f"All {vocabulary_size} vocabulary ids are positives; "
            f"cannot sample {count} negatives"
        )

    accepted: List[int] = []
    while len(accepted) < count:
        word_id = int(rng.integers(vocabulary_size))
        while word_id in excluded:
            word_id = int(rng.integers(vocabulary_size))
        accepted.append(word_id)
    return accepted


def build_examples(
    tokens: Iterable[str],
    vectors: VectorStore,
    rng: np.random.Generator,
    rho: int = -1,
    max_words_per_entity: int = -1,
) -> TrainingExamples:
    """
    Build the labeled feature set for one entity.

    Args:
        tokens: Description tokens, in order
        vectors: Shared word vector store
        rng: The calling worker's random generator
        rho: Number of negatives to sample; negative means one per positive
        max_words_per_entity: Cap on positives; non-positive means unbounded

    Returns:
        TrainingExamples with positives first; empty if no token resolved
    """
    dimension = vectors.dimension
    positives: List[np.ndarray] = []
    positive_ids: Set[int] = set()

    for token in tokens:
        if max_words_per_entity > 0 and len(positives) >= max_words_per_entity:
            break
        vector = vectors.vector_of(token)
        if vector is None:
            continue
        positives.append(vector)
        positive_ids.add(vectors.id_of(token))

    if not positives:
        return empty_examples(dimension)

    if rho < 0:
        rho = len(positives)

    negative_ids = sample_negative_ids(rng, vectors.size(), positive_ids, rho)
    rows = positives + [vectors.vector_at(word_id) for word_id in negative_ids]

    labels = np.zeros(len(rows), dtype=np.int8)
    labels[:len(positives)] = 1

    return TrainingExamples(
        features=np.vstack(rows).astype(np.float32, copy=False),
        labels=labels,
        num_positive=len(positives),
    )
