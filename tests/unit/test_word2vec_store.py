"""
Unit tests for the word2vec vector store.
"""

import numpy as np
import pytest

from entity_embed.core.exceptions import VectorStoreError
from entity_embed.vectors import Word2VecStore

from conftest import write_text_vectors


def write_binary_vectors(path, vectors: dict, separator: bytes = b"\n"):
    """Write a word2vec binary file for a token -> vector mapping."""
    dimension = len(next(iter(vectors.values())))
    with open(path, "wb") as f:
        f.write(f"{len(vectors)} {dimension}\n".encode("utf-8"))
        for token, vector in vectors.items():
            f.write(token.encode("utf-8") + b" ")
            f.write(np.asarray(vector, dtype="<f4").tobytes())
            f.write(separator)
    return path


class TestFromMapping:
    """Tests for in-memory construction."""

    def test_ids_follow_insertion_order(self, animal_store):
        assert animal_store.id_of("dog") == 0
        assert animal_store.id_of("cat") == 1
        assert animal_store.id_of("fish") == 2

    def test_size_and_dimension(self, animal_store):
        assert animal_store.size() == 3
        assert len(animal_store) == 3
        assert animal_store.dimension == 2

    def test_vector_lookup(self, animal_store):
        np.testing.assert_array_equal(animal_store.vector_of("fish"), [0.5, 0.5])
        np.testing.assert_array_equal(animal_store.vector_at(1), [0.0, 1.0])
        assert animal_store.vector_of("fish").dtype == np.float32

    def test_unknown_token_is_absent(self, animal_store):
        """Unknown tokens are not an error."""
        assert animal_store.vector_of("unknownword") is None
        assert animal_store.id_of("unknownword") is None
        assert "unknownword" not in animal_store
        assert "dog" in animal_store

    def test_vector_at_out_of_range(self, animal_store):
        with pytest.raises(IndexError):
            animal_store.vector_at(3)
        with pytest.raises(IndexError):
            animal_store.vector_at(-1)

    def test_vectors_are_read_only(self, animal_store):
        vector = animal_store.vector_of("dog")
        with pytest.raises(ValueError):
            vector[0] = 42.0

    def test_mismatched_dimensions_rejected(self):
        with pytest.raises(VectorStoreError):
            Word2VecStore.from_mapping({"a": [1.0, 2.0], "b": [1.0]})

    def test_empty_mapping_rejected(self):
        with pytest.raises(VectorStoreError):
            Word2VecStore.from_mapping({})


class TestTextFormat:
    """Tests for loading the word2vec text format."""

    def test_load(self, tmp_path, animal_vectors):
        path = write_text_vectors(tmp_path / "words.vec", animal_vectors)

        store = Word2VecStore.load(path)

        assert store.size() == 3
        assert store.dimension == 2
        assert store.id_of("cat") == 1
        np.testing.assert_allclose(store.vector_of("fish"), [0.5, 0.5])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Word2VecStore.load(tmp_path / "nope.vec")

    def test_bad_header(self, tmp_path):
        path = tmp_path / "words.vec"
        path.write_text("dog 1.0 0.0\n", encoding="utf-8")

        with pytest.raises(VectorStoreError):
            Word2VecStore.load(path)

    def test_wrong_vector_length(self, tmp_path):
        path = tmp_path / "words.vec"
        path.write_text("2 2\ndog 1.0 0.0\ncat 1.0\n", encoding="utf-8")

        with pytest.raises(VectorStoreError) as excinfo:
            Word2VecStore.load(path)
        assert excinfo.value.line_number == 3

    def test_fewer_entries_than_declared(self, tmp_path):
        path = tmp_path / "words.vec"
        path.write_text("3 2\ndog 1.0 0.0\ncat 0.0 1.0\n", encoding="utf-8")

        with pytest.raises(VectorStoreError):
            Word2VecStore.load(path)

    def test_more_entries_than_declared(self, tmp_path):
        path = tmp_path / "words.vec"
        path.write_text("1 2\ndog 1.0 0.0\ncat 0.0 1.0\n", encoding="utf-8")

        with pytest.raises(VectorStoreError):
            Word2VecStore.load(path)

    def test_non_numeric_value(self, tmp_path):
        path = tmp_path / "words.vec"
        path.write_text("1 2\ndog 1.0 abc\n", encoding="utf-8")

        with pytest.raises(VectorStoreError):
            Word2VecStore.load(path)


class TestBinaryFormat:
    """Tests for loading the word2vec binary format."""

    def test_load_by_suffix(self, tmp_path, animal_vectors):
        path = write_binary_vectors(tmp_path / "words.bin", animal_vectors)

        store = Word2VecStore.load(path)

        assert store.size() == 3
        assert store.id_of("fish") == 2
        np.testing.assert_array_equal(store.vector_of("dog"), [1.0, 0.0])

    def test_load_without_newline_separators(self, tmp_path, animal_vectors):
        path = write_binary_vectors(tmp_path / "words.bin", animal_vectors, separator=b"")

        store = Word2VecStore.load(path)

        np.testing.assert_array_equal(store.vector_of("cat"), [0.0, 1.0])

    def test_forced_binary_flag(self, tmp_path, animal_vectors):
        path = write_binary_vectors(tmp_path / "words.dat", animal_vectors)

        store = Word2VecStore.load(path, binary=True)

        assert store.token_at(1) == "cat"

    def test_truncated_file(self, tmp_path, animal_vectors):
        path = write_binary_vectors(tmp_path / "words.bin", animal_vectors)
        data = path.read_bytes()
        path.write_bytes(data[:-6])

        with pytest.raises(VectorStoreError):
            Word2VecStore.load(path)
