"""
Custom exceptions for the entity embedding trainer.
"""


class EmbedError(Exception):
    """Base exception for all entity embedding errors."""
    pass


class EmbedConfigError(EmbedError):
    """
    Error in run configuration.

    Raised when:
    - Configuration file is invalid
    - A required path is missing or does not exist
    - Numeric settings are out of valid range
    """
    pass


class VectorStoreError(EmbedError):
    """
    Error loading the word vector store.

    Raised when:
    - The header line is missing or malformed
    - A vector has the wrong number of dimensions
    - The declared vocabulary size does not match the file contents
    """

    def __init__(self, message: str, path: str = None, line_number: int = None):
        super().__init__(message)
        self.path = path
        self.line_number = line_number


class CorpusError(EmbedError):
    """Error reading the entity description corpus."""
    pass


class SamplingError(EmbedError):
    """
    Negative sampling cannot make progress.

    Raised when every vocabulary id is already a positive example, so
    rejection sampling would never accept a negative.
    """
    pass
