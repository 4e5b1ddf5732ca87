"""Exception types raised by the retrieval core."""

from __future__ import annotations


class RagError(Exception):
    """Base class for retrieval-core errors."""


class ConfigError(RagError, ValueError):
    """Raised when configuration loading or validation fails."""


class VocabularyNotBuiltError(RagError, RuntimeError):
    """Raised when embedding is attempted before a vocabulary was built."""


class IndexNotBuiltError(RagError, RuntimeError):
    """Raised when searching before the inverted index was built."""


class VectorStoreError(RagError):
    """Raised when a vector-store call returns an unusable response."""
