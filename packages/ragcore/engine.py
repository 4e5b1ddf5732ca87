"""Service object owning one consistent build of the vocabulary and lexical index."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from .chunker import Chunk, make_chunks
from .config import RagConfig
from .embedder import LocalEmbedder, Vocabulary, build_vocabulary
from .errors import IndexNotBuiltError, VocabularyNotBuiltError
from .lexical import Hit, InvertedIndex, build_index, search

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineState:
    chunks: Tuple[Chunk, ...]
    vocabulary: Vocabulary
    index: InvertedIndex


class RetrievalEngine:
    """Builds chunks, vocabulary and inverted index together and serves reads.

    Builds are serialised by a lock and published as a single immutable
    :class:`EngineState`, so readers see either the previous build or the
    new one and never a mix.  Reads take no lock.
    """

    def __init__(self, config: Optional[RagConfig] = None) -> None:
        self.config = config or RagConfig()
        self._build_lock = threading.Lock()
        self._state: Optional[EngineState] = None

    @property
    def state(self) -> Optional[EngineState]:
        return self._state

    @property
    def is_built(self) -> bool:
        return self._state is not None

    def rebuild_from_chunks(self, chunks: Iterable[Chunk]) -> EngineState:
        with self._build_lock:
            chunk_tuple = tuple(chunks)
            state = EngineState(
                chunks=chunk_tuple,
                vocabulary=build_vocabulary(chunk.text for chunk in chunk_tuple),
                index=build_index(chunk_tuple),
            )
            self._state = state
        logger.info(
            "Engine rebuilt: %d chunks, %d vocabulary terms",
            len(state.chunks),
            len(state.vocabulary),
        )
        return state

    def rebuild(self, root: Union[str, Path, None] = None) -> EngineState:
        """Chunk *root* (default: the configured docs dir) and rebuild everything."""
        root = root if root is not None else self.config.indexing.docs_dir
        chunks = make_chunks(root, config=self.config)
        return self.rebuild_from_chunks(chunks)

    def embedder(self) -> LocalEmbedder:
        """Local embedder bound to the current vocabulary snapshot."""
        state = self._state
        if state is None:
            raise VocabularyNotBuiltError("engine has not been built; call rebuild() first")
        return LocalEmbedder(self.config.embedding.local.dim, state.vocabulary)

    def embed(self, texts: Iterable[str]) -> np.ndarray:
        return self.embedder().embed_texts(texts)

    def search(self, query: str, k: int = 5) -> List[Hit]:
        state = self._state
        if state is None:
            raise IndexNotBuiltError("engine has not been built; call rebuild() first")
        return search(state.index, query, k)
