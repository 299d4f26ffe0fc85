"""
Shared test fixtures and configuration for pytest.
"""

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from entity_embed.vectors import Word2VecStore  # noqa: E402


logger = logging.getLogger(__name__)


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "e2e: End-to-end tests (full pipeline on temporary files)")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# ============================================================================
# Helpers
# ============================================================================

def write_corpus(path: Path, lines) -> Path:
    """Write corpus lines (without newlines) to ``path``."""
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


def write_text_vectors(path: Path, vectors: dict) -> Path:
    """Write a word2vec text file for a token -> vector mapping."""
    dimension = len(next(iter(vectors.values())))
    lines = [f"{len(vectors)} {dimension}"]
    for token, vector in vectors.items():
        lines.append(token + " " + " ".join(str(v) for v in vector))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def animal_vectors() -> dict:
    """The three-word, two-dimensional vocabulary used across tests."""
    return {"dog": [1.0, 0.0], "cat": [0.0, 1.0], "fish": [0.5, 0.5]}


@pytest.fixture
def animal_store(animal_vectors) -> Word2VecStore:
    """Vector store over ``animal_vectors``."""
    return Word2VecStore.from_mapping(animal_vectors)


@pytest.fixture
def random_store() -> Word2VecStore:
    """A larger random vocabulary (200 words, 8 dimensions)."""
    rng = np.random.default_rng(7)
    tokens = [f"w{i}" for i in range(200)]
    return Word2VecStore(tokens, rng.normal(size=(200, 8)).astype(np.float32))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def animal_corpus(tmp_path) -> Path:
    """Corpus with two entities over the animal vocabulary."""
    return write_corpus(tmp_path / "descriptions.tsv", ["Q1\tdog cat", "Q2\tfish"])


@pytest.fixture
def animal_vector_file(tmp_path, animal_vectors) -> Path:
    return write_text_vectors(tmp_path / "words.vec", animal_vectors)
