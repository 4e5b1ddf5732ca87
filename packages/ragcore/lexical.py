"""In-memory inverted index with a BM25 + term-frequency cosine hybrid scorer.

The index is built once from a full chunk list and never mutated; a corpus
change means building a new one.  Documents are addressed internally by
their ordinal position because chunk ids (``basename:index``) can repeat
across directories.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .chunker import Chunk
from .errors import IndexNotBuiltError
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

BM25_K1 = 1.5
BM25_B = 0.75
# Weight of the cosine score in the blend; BM25 gets the remaining 1 - ALPHA.
ALPHA = 0.2
EPSILON = 1e-9
DEFAULT_SNIPPET_CHARS = 220
HIGHLIGHT_MARKER = "**"


@dataclass(frozen=True)
class IndexedDocument:
    id: str
    text: str
    terms: Tuple[str, ...]


@dataclass(frozen=True)
class Hit:
    id: str
    score: float
    snippet: str

    def to_dict(self) -> dict:
        return {"id": self.id, "score": self.score, "snippet": self.snippet}


@dataclass(frozen=True)
class InvertedIndex:
    """Read-only corpus statistics for lexical scoring.

    ``tf`` maps term -> document ordinal -> count, ``df`` maps term -> number
    of documents containing it, ``doc_len`` holds the term count of each
    document.
    """

    documents: Tuple[IndexedDocument, ...]
    df: Mapping[str, int]
    tf: Mapping[str, Mapping[int, int]]
    doc_len: Tuple[int, ...]
    avg_doc_len: float

    @property
    def vocab_size(self) -> int:
        return len(self.df)

    def __len__(self) -> int:
        return len(self.documents)

    def candidates(self, terms: Iterable[str]) -> List[int]:
        """Ordinals of documents containing at least one of *terms*."""
        found = set()
        for term in terms:
            postings = self.tf.get(term)
            if postings:
                found.update(postings)
        return sorted(found)

    def bm25(self, query_terms: Sequence[str], doc: int) -> float:
        n_docs = len(self.documents)
        doc_len = self.doc_len[doc]
        score = 0.0
        for term in query_terms:
            df = self.df.get(term, 0)
            if df == 0:
                continue
            tf = self.tf[term].get(doc, 0)
            score += bm25_term(tf, df, n_docs, doc_len, self.avg_doc_len)
        return score

    def cosine(self, query_terms: Sequence[str], doc: int) -> float:
        """Cosine between raw term counts of the query and of document *doc*."""
        query_freq = Counter(query_terms)
        doc_freq: Dict[str, int] = {}
        for term in query_freq:
            postings = self.tf.get(term)
            if postings is not None:
                doc_freq[term] = postings.get(doc, 0)

        dot = sum(qf * doc_freq.get(term, 0) for term, qf in query_freq.items())
        query_norm = math.sqrt(sum(qf * qf for qf in query_freq.values()))
        doc_norm = math.sqrt(sum(df * df for df in doc_freq.values()))
        if query_norm == 0 or doc_norm == 0:
            return 0.0
        return dot / (query_norm * doc_norm)

    def search(self, query: str, k: int = 5, **kwargs) -> List[Hit]:
        return search(self, query, k, **kwargs)


def bm25_idf(df: int, n_docs: int) -> float:
    """BM25 inverse document frequency; negative for very common terms."""
    return math.log((n_docs - df + 0.5) / (df + 0.5 + EPSILON))


def bm25_term(
    tf: int,
    df: int,
    n_docs: int,
    doc_len: int,
    avg_doc_len: float,
    k1: float = BM25_K1,
    b: float = BM25_B,
) -> float:
    """BM25 contribution of a single query term to one document."""
    length_ratio = doc_len / avg_doc_len if avg_doc_len > 0 else 0.0
    numerator = tf * (k1 + 1)
    denominator = tf + k1 * (1 - b + b * length_ratio)
    return bm25_idf(df, n_docs) * (numerator / (denominator + EPSILON))


def build_index(chunks: Iterable[Chunk]) -> InvertedIndex:
    """Build an immutable :class:`InvertedIndex` from *chunks*."""
    documents: List[IndexedDocument] = []
    df: Counter = Counter()
    tf: Dict[str, Dict[int, int]] = {}
    doc_len: List[int] = []

    for ordinal, chunk in enumerate(chunks):
        terms = tuple(tokenize(chunk.text))
        documents.append(IndexedDocument(id=chunk.id, text=chunk.text, terms=terms))
        counts = Counter(terms)
        for term, count in counts.items():
            tf.setdefault(term, {})[ordinal] = count
        df.update(counts.keys())
        doc_len.append(len(terms))

    avg_doc_len = sum(doc_len) / len(documents) if documents else 0.0
    logger.info(
        "Built lexical index: %d documents, %d terms, avg length %.1f",
        len(documents),
        len(df),
        avg_doc_len,
    )
    return InvertedIndex(
        documents=tuple(documents),
        df=MappingProxyType(dict(df)),
        tf=MappingProxyType({term: MappingProxyType(postings) for term, postings in tf.items()}),
        doc_len=tuple(doc_len),
        avg_doc_len=avg_doc_len,
    )


def search(
    index: Optional[InvertedIndex],
    query: str,
    k: int = 5,
    *,
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    marker: str = HIGHLIGHT_MARKER,
) -> List[Hit]:
    """Rank documents sharing a term with *query*; return at most *k* hits.

    Only documents from the inverted postings of the query terms are
    scored.  Each score blends BM25 and term-frequency cosine as
    ``bm25 * (1 - ALPHA) + cosine * ALPHA``.
    """
    if index is None:
        raise IndexNotBuiltError("lexical index has not been built")
    if k <= 0:
        return []

    terms = tokenize(query)
    if not terms or not index.documents:
        return []

    scored: List[Tuple[float, int]] = []
    for doc in index.candidates(terms):
        blended = index.bm25(terms, doc) * (1 - ALPHA) + index.cosine(terms, doc) * ALPHA
        scored.append((blended, doc))
    scored.sort(key=lambda item: (-item[0], item[1]))

    hits: List[Hit] = []
    for score, doc in scored[:k]:
        document = index.documents[doc]
        hits.append(
            Hit(
                id=document.id,
                score=score,
                snippet=make_snippet(document.text, terms, snippet_chars, marker),
            )
        )
    return hits


def _title(term: str) -> str:
    return term[:1].upper() + term[1:]


def make_snippet(
    text: str,
    terms: Sequence[str],
    max_chars: int = DEFAULT_SNIPPET_CHARS,
    marker: str = HIGHLIGHT_MARKER,
) -> str:
    """Cut a window of *max_chars* around the first query-term match.

    The window starts about a third of its width before the match.  When no
    term occurs in *text* the leading *max_chars* characters are returned.
    Literal and title-cased occurrences of each term are wrapped in *marker*.
    """
    if max_chars <= 0:
        max_chars = DEFAULT_SNIPPET_CHARS

    pos = -1
    for term in terms:
        if not term:
            continue
        found = text.find(term)
        if found >= 0:
            pos = found
            break
    if pos < 0:
        return text[:max_chars]

    start = max(0, pos - max_chars // 3)
    segment = text[start:start + max_chars]
    for term in dict.fromkeys(terms):
        if not term:
            continue
        segment = segment.replace(term, f"{marker}{term}{marker}")
        title = _title(term)
        if title != term:
            segment = segment.replace(title, f"{marker}{title}{marker}")
    return segment
