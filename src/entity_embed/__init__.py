"""
Entity Embeddings

Learns a dense vector for every entity from its textual description and a
pretrained word vector table. Each entity is fitted with its own
L2-regularized logistic regression that separates its description words
from negatively sampled vocabulary words; the weight vector is the
embedding.

Key components:
- vectors/: Word vector store loading (word2vec text/binary)
- corpus/: Streaming reader for ``entity_id<TAB>description`` files
- training/: Example building with negative sampling, logistic regression
- runner/: Shard partitioning and the worker pool
- storage/: Per-shard output files and merging
"""

__version__ = "0.1.0"
