"""
Shard output files for entity embeddings.

Each worker writes ``<output>.<rank>``. Shard 0 starts with the header
``"<total_records> <dimension>"``; every other line is
``"<entity_id> <w_0> ... <w_{d-1}>"``.
"""

import logging
import shutil
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import numpy as np


logger = logging.getLogger(__name__)

DEFAULT_FLUSH_EVERY = 1000

PathLike = Union[str, Path]


def shard_path(output: PathLike, rank: int) -> Path:
    """Return the shard file path for a worker rank."""
    return Path(f"{output}.{rank}")


def format_embedding(entity_id: str, weights: np.ndarray) -> str:
    """Format one output line (without newline)."""
    values = " ".join(str(v) for v in np.asarray(weights, dtype=np.float32))
    return f"{entity_id} {values}"


class ShardWriter:
    """
    Streams one worker's embeddings to its shard file.

    Lines are buffered by the file object and explicitly flushed every
    ``flush_every`` embeddings and on close. Nothing is renamed into place,
    so a crash can leave a partially written shard behind.
    """

    def __init__(
        self,
        output: PathLike,
        rank: int,
        total_records: int,
        dimension: int,
        flush_every: int = DEFAULT_FLUSH_EVERY,
    ):
        """
        Initialize the writer.

        Args:
            output: Configured output path prefix
            rank: Worker rank (shard 0 also writes the header)
            total_records: Corpus record count for the header
            dimension: Embedding dimension for the header
            flush_every: Flush after this many written embeddings
        """
        self.path = shard_path(output, rank)
        self.rank = rank
        self.total_records = total_records
        self.dimension = dimension
        self.flush_every = max(1, flush_every)
        self.lines_written = 0
        self._since_flush = 0
        self._file = None

    def open(self) -> "ShardWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w", encoding="utf-8")
        if self.rank == 0:
            self._file.write(f"{self.total_records} {self.dimension}\n")
        logger.debug(f"Opened shard file: {self.path}")
        return self

    def write(self, entity_id: str, weights: np.ndarray) -> None:
        """Append one entity embedding."""
        if self._file is None:
            raise ValueError(f"Shard writer for {self.path} is not open")
        if len(weights) != self.dimension:
            raise ValueError(
                f"Embedding for {entity_id} has {len(weights)} values, "
                f"expected {self.dimension}"
            )

        self._file.write(format_embedding(entity_id, weights))
        self._file.write("\n")
        self.lines_written += 1
        self._since_flush += 1
        if self._since_flush >= self.flush_every:
            self.flush()

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()
        self._since_flush = 0

    def close(self) -> None:
        """Flush and close the shard file. Safe to call twice."""
        if self._file is None:
            return
        self.flush()
        self._file.close()
        self._file = None
        logger.debug(f"Closed shard file {self.path} ({self.lines_written} embeddings)")

    def __enter__(self) -> "ShardWriter":
        return self.open()

    def __exit__(self, *args) -> None:
        self.close()


def read_shard(path: PathLike) -> Iterator[Tuple[str, np.ndarray]]:
    """
    Yield ``(entity_id, vector)`` pairs from a shard or merged file.

    A leading ``"<count> <dimension>"`` header line is skipped.
    """
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f):
            parts = line.split()
            if not parts:
                continue
            if line_number == 0 and len(parts) == 2 and all(p.isdigit() for p in parts):
                continue
            yield parts[0], np.asarray([float(x) for x in parts[1:]], dtype=np.float32)


def read_header(path: PathLike) -> Optional[Tuple[int, int]]:
    """Return ``(count, dimension)`` from shard 0, or None if absent."""
    with open(path, "r", encoding="utf-8") as f:
        parts = f.readline().split()
    if len(parts) == 2 and all(p.isdigit() for p in parts):
        return int(parts[0]), int(parts[1])
    return None


def merge_shards(
    output: PathLike,
    num_shards: int,
    destination: Optional[PathLike] = None,
) -> Path:
    """
    Concatenate shard files in rank order into one embeddings file.

    Args:
        output: Output prefix the shards were written under
        num_shards: Number of shards (worker count of the run)
        destination: Merged file path (defaults to the prefix itself)

    Returns:
        Path of the merged file

    Raises:
        FileNotFoundError: If any shard file is missing
    """
    shards: List[Path] = [shard_path(output, rank) for rank in range(num_shards)]
    missing = [str(p) for p in shards if not p.exists()]
    if missing:
        raise FileNotFoundError(f"Missing shard files: {', '.join(missing)}")

    destination = Path(destination) if destination else Path(output)
    destination.parent.mkdir(parents=True, exist_ok=True)

    with open(destination, "wb") as out:
        for path in shards:
            with open(path, "rb") as f:
                shutil.copyfileobj(f, out)
            logger.debug(f"Merged {path}")

    logger.info(f"Merged {num_shards} shards into: {destination}")
    return destination
