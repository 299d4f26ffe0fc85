"""
Vector store interface consumed by the trainer.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class VectorStore(ABC):
    """
    Abstract base class for read-only word vector lookups.

    Implementations are loaded once and then shared by every worker thread,
    so all methods must be safe for concurrent reads and must not mutate
    state after construction.
    """

    @abstractmethod
    def vector_of(self, token: str) -> Optional[np.ndarray]:
        """
        Look up the vector of a token.

        Returns:
            The vector, or None if the token is not in the vocabulary
        """
        pass

    @abstractmethod
    def id_of(self, token: str) -> Optional[int]:
        """Return the dense id of a token, or None if unknown."""
        pass

    @abstractmethod
    def vector_at(self, word_id: int) -> np.ndarray:
        """Return the vector stored at a dense id in [0, size())."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Return the vocabulary size."""
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the vector dimensionality N."""
        pass

    def __contains__(self, token: str) -> bool:
        return self.id_of(token) is not None

    def __len__(self) -> int:
        return self.size()
