"""Local retrieval core (chunking + local embeddings + lexical search + ingestion)."""

from .chunker import Chunk, chunk_spans, chunk_text, iter_files, make_chunks
from .config import RagConfig, load_config
from .embedder import (
    BaseEmbedder,
    LocalEmbedder,
    OpenAIEmbedder,
    Vocabulary,
    build_embedder,
    build_vocabulary,
    embed_text,
)
from .engine import EngineState, RetrievalEngine
from .errors import (
    ConfigError,
    IndexNotBuiltError,
    RagError,
    VectorStoreError,
    VocabularyNotBuiltError,
)
from .ingest import fit_embedder, ingest_chunks, list_projects, list_projects_filtered, search_vectors
from .lexical import Hit, InvertedIndex, build_index, make_snippet, search
from .tokenizer import tokenize
from .vector_store import InMemoryVectorStore, QdrantStore, VectorHit, VectorPoint

__all__ = [
    "BaseEmbedder",
    "Chunk",
    "ConfigError",
    "EngineState",
    "Hit",
    "InMemoryVectorStore",
    "IndexNotBuiltError",
    "InvertedIndex",
    "LocalEmbedder",
    "OpenAIEmbedder",
    "QdrantStore",
    "RagConfig",
    "RagError",
    "RetrievalEngine",
    "VectorHit",
    "VectorPoint",
    "VectorStoreError",
    "Vocabulary",
    "VocabularyNotBuiltError",
    "build_embedder",
    "build_index",
    "build_vocabulary",
    "chunk_spans",
    "chunk_text",
    "embed_text",
    "fit_embedder",
    "ingest_chunks",
    "iter_files",
    "list_projects",
    "list_projects_filtered",
    "load_config",
    "make_chunks",
    "make_snippet",
    "search",
    "search_vectors",
    "tokenize",
]
