"""Tokenizer shared by the embedding vocabulary and the lexical index."""

from __future__ import annotations

import re
from typing import List

# ASCII word characters only; other letters become separators.
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or",
        "but", "in", "on", "at", "to",
        "for", "of", "with", "by", "is",
        "are", "was", "were", "be", "been",
        "have", "has", "had", "do", "does",
        "did", "will", "would", "could", "should",
    }
)

MIN_TOKEN_LEN = 3


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation, and drop short tokens and stop words."""
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return [
        term
        for term in cleaned.split()
        if len(term) >= MIN_TOKEN_LEN and term not in STOP_WORDS
    ]
