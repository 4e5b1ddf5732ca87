"""Embedding interfaces, the local TF-IDF/feature-hashing provider and a remote provider.

The local provider works in two explicit phases.  :func:`build_vocabulary`
turns a corpus into an immutable :class:`Vocabulary`; :func:`embed_text`
then folds a text's TF-IDF weights into a fixed number of buckets.  Vectors
are only comparable when they were produced against the same vocabulary.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from .config import RagConfig
from .errors import ConfigError, RagError, VocabularyNotBuiltError
from .tokenizer import tokenize

if TYPE_CHECKING:
    from .http_client import HttpClient

logger = logging.getLogger(__name__)

LOCAL_MODEL_NAME = "local-tfidf"
DEFAULT_LOCAL_DIM = 300
HASH_FUNCTIONS = 3


class BaseEmbedder:
    """Simple embedder interface for text and query embedding."""

    model_name: str
    dimension: int

    def dim(self) -> int:
        return self.dimension

    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        raise NotImplementedError

    def embed_query(self, text: str) -> np.ndarray:
        embeddings = self.embed_texts([text])
        if embeddings.size == 0:
            return np.zeros((self.dimension,), dtype="float32")
        return embeddings[0]


@dataclass(frozen=True)
class Vocabulary:
    """Term indices and IDF weights for one corpus snapshot."""

    terms: Mapping[str, int]
    idf: Mapping[str, float]
    doc_count: int

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: object) -> bool:
        return term in self.terms


def build_vocabulary(corpus: Iterable[str]) -> Vocabulary:
    """Build a deterministic vocabulary and IDF table from *corpus*.

    Term indices follow the sorted list of unique terms, so the same corpus
    always yields the same indices.  ``idf = ln(total_docs / (df + 1))``.
    """
    doc_freq: Counter = Counter()
    total_docs = 0
    for text in corpus:
        total_docs += 1
        doc_freq.update(set(tokenize(text)))

    terms: Dict[str, int] = {term: i for i, term in enumerate(sorted(doc_freq))}
    idf: Dict[str, float] = {
        term: math.log(total_docs / (df + 1.0)) for term, df in doc_freq.items()
    }
    logger.debug("Built vocabulary: %d terms from %d documents", len(terms), total_docs)
    return Vocabulary(
        terms=MappingProxyType(terms),
        idf=MappingProxyType(idf),
        doc_count=total_docs,
    )


@lru_cache(maxsize=65536)
def hash_buckets(index: int, dim: int) -> Tuple[int, ...]:
    """Buckets that vocabulary *index* is spread over in a *dim*-sized vector.

    For each seed ``h`` the md5 digest of ``"<index>_<h>"`` is taken and its
    first three bytes are summed modulo *dim*.
    """
    buckets = []
    for h in range(HASH_FUNCTIONS):
        digest = hashlib.md5(f"{index}_{h}".encode("ascii")).digest()
        buckets.append((digest[0] % dim + digest[1] % dim + digest[2] % dim) % dim)
    return tuple(buckets)


def sparse_tfidf(vocabulary: Vocabulary, text: str) -> Dict[int, float]:
    """TF-IDF weights of *text* keyed by vocabulary index.

    Term frequency is normalised by the text's total term count.  Terms the
    vocabulary does not know are dropped.
    """
    terms = tokenize(text)
    if not terms:
        return {}
    total = float(len(terms))
    weights: Dict[int, float] = {}
    for term, count in Counter(terms).items():
        index = vocabulary.terms.get(term)
        if index is None:
            continue
        weights[index] = (count / total) * vocabulary.idf[term]
    return weights


def embed_text(vocabulary: Optional[Vocabulary], text: str, dim: int = DEFAULT_LOCAL_DIM) -> np.ndarray:
    """Return the L2-normalised, *dim*-sized embedding of *text*."""
    if vocabulary is None:
        raise VocabularyNotBuiltError("vocabulary has not been built; call build_vocabulary first")
    if dim <= 0:
        raise ValueError("dim must be positive")

    vector = np.zeros(dim, dtype=np.float64)
    for index, weight in sparse_tfidf(vocabulary, text).items():
        share = weight / HASH_FUNCTIONS
        for bucket in hash_buckets(index, dim):
            vector[bucket] += share

    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector /= norm
    return vector.astype("float32")


class LocalEmbedder(BaseEmbedder):
    """TF-IDF + feature hashing embedder that needs no model or network."""

    def __init__(
        self,
        dimension: int = DEFAULT_LOCAL_DIM,
        vocabulary: Optional[Vocabulary] = None,
    ) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.model_name = LOCAL_MODEL_NAME
        self.dimension = int(dimension)
        self.vocabulary = vocabulary

    def fit(self, corpus: Iterable[str]) -> "LocalEmbedder":
        """Return a new embedder bound to the vocabulary of *corpus*."""
        return LocalEmbedder(self.dimension, build_vocabulary(corpus))

    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        if self.vocabulary is None:
            raise VocabularyNotBuiltError(
                "LocalEmbedder has no vocabulary; call fit() on the corpus first"
            )
        vectors: List[np.ndarray] = [
            embed_text(self.vocabulary, text, self.dimension) for text in texts
        ]
        if not vectors:
            return np.zeros((0, self.dimension), dtype="float32")
        return np.vstack(vectors)


class OpenAIEmbedder(BaseEmbedder):
    """Remote embeddings from the OpenAI ``/v1/embeddings`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        client: Optional["HttpClient"] = None,
        base_url: str = "https://api.openai.com",
    ) -> None:
        if not api_key:
            raise ConfigError("OpenAI API key is required")
        if client is None:
            from .http_client import HttpClient

            client = HttpClient(base_url, timeout=30.0)
        self.model_name = model
        self.dimension = int(dimension)
        self.client = client
        self._headers = {"Authorization": f"Bearer {api_key}"}

    def embed_texts(self, texts: Iterable[str]) -> np.ndarray:
        text_list = list(texts)
        if not text_list:
            return np.zeros((0, self.dimension), dtype="float32")
        payload = self.client.post_json(
            "/v1/embeddings",
            {"model": self.model_name, "input": text_list},
            headers=self._headers,
        )
        data = payload.get("data") or []
        if len(data) != len(text_list):
            raise RagError(
                f"embedding response has {len(data)} vectors for {len(text_list)} inputs"
            )
        matrix = np.array([item["embedding"] for item in data], dtype="float32")
        if matrix.shape[1] != self.dimension:
            raise RagError(
                f"embedding dimension {matrix.shape[1]} does not match configured {self.dimension}"
            )
        return matrix


def build_embedder(config: RagConfig) -> BaseEmbedder:
    """Create the embedder selected by ``config.embedding.provider``.

    A local embedder is returned unfitted; callers must ``fit`` it on the
    corpus before embedding.
    """
    embedding = config.embedding
    if embedding.provider == "local":
        logger.info("Using local TF-IDF embeddings (dim=%d)", embedding.local.dim)
        return LocalEmbedder(embedding.local.dim)
    if embedding.provider == "openai":
        logger.info("Using OpenAI embeddings (model=%s)", embedding.openai.model)
        return OpenAIEmbedder(
            api_key=embedding.openai.api_key,
            model=embedding.openai.model,
            dimension=embedding.openai.dim,
            base_url=embedding.openai.base_url,
        )
    raise ConfigError(f"unsupported embedding provider: {embedding.provider}")
