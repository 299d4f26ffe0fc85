"""
Vector store implementations.
"""

from .word2vec import Word2VecStore

__all__ = ["Word2VecStore"]
