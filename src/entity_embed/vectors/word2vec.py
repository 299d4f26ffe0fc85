"""
Word2vec-format vector store.

Loads a pretrained word vector table into one dense float32 matrix plus a
token -> id dictionary. Both the text format (header line ``"<vocab> <dim>"``
followed by ``token f1 ... fd`` lines) and the binary format (same header,
then ``token`` + space + ``dim`` little-endian float32 values per entry) are
supported.
"""

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..core.exceptions import VectorStoreError
from ..core.vector_store import VectorStore


logger = logging.getLogger(__name__)

BINARY_SUFFIXES = {".bin"}


class Word2VecStore(VectorStore):
    """
    In-memory word vector table.

    Ids are dense row indices into the matrix, assigned in file (or mapping)
    order. The matrix is marked read-only after construction so that worker
    threads can share it without copies.
    """

    def __init__(self, tokens: Sequence[str], matrix: np.ndarray):
        """
        Initialize the store.

        Args:
            tokens: Vocabulary in id order
            matrix: Array of shape (len(tokens), dimension)
        """
        matrix = np.array(matrix, dtype=np.float32, order="C")
        if matrix.ndim != 2:
            raise VectorStoreError(f"Expected a 2-D matrix, got shape {matrix.shape}")
        if matrix.shape[0] != len(tokens):
            raise VectorStoreError(
                f"Row mismatch: vocabulary has {len(tokens)} tokens, "
                f"matrix has {matrix.shape[0]} rows"
            )

        self._index: Dict[str, int] = {}
        for word_id, token in enumerate(tokens):
            # First occurrence wins, like most word2vec readers
            self._index.setdefault(token, word_id)

        matrix.setflags(write=False)
        self._matrix = matrix
        self._tokens = list(tokens)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_mapping(cls, vectors: Mapping[str, Sequence[float]]) -> "Word2VecStore":
        """Build a store from a token -> vector mapping (ids in insertion order)."""
        tokens = list(vectors.keys())
        if not tokens:
            raise VectorStoreError("Cannot build a vector store from an empty mapping")

        rows = [np.asarray(vectors[t], dtype=np.float32) for t in tokens]
        dimension = rows[0].shape[0]
        for token, row in zip(tokens, rows):
            if row.shape != (dimension,):
                raise VectorStoreError(
                    f"Vector for '{token}' has shape {row.shape}, expected ({dimension},)"
                )
        return cls(tokens, np.vstack(rows))

    @classmethod
    def load(cls, path: Union[str, Path], binary: Optional[bool] = None) -> "Word2VecStore":
        """
        Load a word2vec file.

        Args:
            path: Path to the vector file
            binary: Force binary (True) or text (False) parsing; by default
                files ending in ``.bin`` are read as binary

        Returns:
            Loaded store

        Raises:
            FileNotFoundError: If the file does not exist
            VectorStoreError: If the file is malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Vector file not found: {path}")

        if binary is None:
            binary = path.suffix.lower() in BINARY_SUFFIXES

        logger.info(f"Loading {'binary' if binary else 'text'} word vectors from: {path}")
        if binary:
            store = cls._load_binary(path)
        else:
            store = cls._load_text(path)
        logger.info(f"Loaded {store.size()} vectors of dimension {store.dimension}")
        return store

    @staticmethod
    def _parse_header(line: str, path: Path):
        parts = line.split()
        if len(parts) != 2:
            raise VectorStoreError(
                f"Malformed header '{line.strip()}', expected '<vocab> <dim>'",
                path=str(path), line_number=1,
            )
        try:
            vocab_size, dimension = int(parts[0]), int(parts[1])
        except ValueError:
            raise VectorStoreError(
                f"Malformed header '{line.strip()}', expected integers",
                path=str(path), line_number=1,
            )
        if vocab_size <= 0 or dimension <= 0:
            raise VectorStoreError(
                f"Header declares an empty table: {vocab_size} x {dimension}",
                path=str(path), line_number=1,
            )
        return vocab_size, dimension

    @classmethod
    def _load_text(cls, path: Path) -> "Word2VecStore":
        with open(path, "r", encoding="utf-8") as f:
            vocab_size, dimension = cls._parse_header(f.readline(), path)
            matrix = np.empty((vocab_size, dimension), dtype=np.float32)
            tokens: List[str] = []

            for line_number, line in enumerate(f, start=2):
                parts = line.rstrip("\n").split()
                if not parts:
                    continue
                if len(tokens) >= vocab_size:
                    raise VectorStoreError(
                        f"More entries than the {vocab_size} declared in the header",
                        path=str(path), line_number=line_number,
                    )
                if len(parts) != dimension + 1:
                    raise VectorStoreError(
                        f"Expected {dimension} values for '{parts[0]}', got {len(parts) - 1}",
                        path=str(path), line_number=line_number,
                    )
                try:
                    matrix[len(tokens)] = [float(x) for x in parts[1:]]
                except ValueError as e:
                    raise VectorStoreError(
                        f"Non-numeric value for '{parts[0]}': {e}",
                        path=str(path), line_number=line_number,
                    )
                tokens.append(parts[0])

        if len(tokens) != vocab_size:
            raise VectorStoreError(
                f"Header declares {vocab_size} entries, file has {len(tokens)}",
                path=str(path),
            )
        return cls(tokens, matrix)

    @classmethod
    def _load_binary(cls, path: Path) -> "Word2VecStore":
        with open(path, "rb") as f:
            header = f.readline().decode("utf-8")
            vocab_size, dimension = cls._parse_header(header, path)
            row_bytes = dimension * 4
            matrix = np.empty((vocab_size, dimension), dtype=np.float32)
            tokens: List[str] = []

            for word_id in range(vocab_size):
                token = bytearray()
                while True:
                    ch = f.read(1)
                    if not ch:
                        raise VectorStoreError(
                            f"Unexpected end of file after {word_id} entries",
                            path=str(path),
                        )
                    if ch == b" ":
                        break
                    # Entries may be separated by a newline
                    if ch != b"\n":
                        token.extend(ch)

                raw = f.read(row_bytes)
                if len(raw) != row_bytes:
                    raise VectorStoreError(
                        f"Truncated vector for entry {word_id}",
                        path=str(path),
                    )
                matrix[word_id] = np.frombuffer(raw, dtype="<f4")
                tokens.append(token.decode("utf-8", errors="replace"))

        return cls(tokens, matrix)

    # =========================================================================
    # Lookups
    # =========================================================================

    def vector_of(self, token: str) -> Optional[np.ndarray]:
        word_id = self._index.get(token)
        if word_id is None:
            return None
        return self._matrix[word_id]

    def id_of(self, token: str) -> Optional[int]:
        return self._index.get(token)

    def vector_at(self, word_id: int) -> np.ndarray:
        if word_id < 0 or word_id >= self._matrix.shape[0]:
            raise IndexError(f"Word id {word_id} out of range [0, {self._matrix.shape[0]})")
        return self._matrix[word_id]

    def token_at(self, word_id: int) -> str:
        return self._tokens[word_id]

    def size(self) -> int:
        return self._matrix.shape[0]

    @property
    def dimension(self) -> int:
        return self._matrix.shape[1]

    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the full vector table."""
        return self._matrix
