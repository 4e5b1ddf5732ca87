"""Turn chunks into vector-store points, and query/aggregate stored points."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .chunker import Chunk
from .config import RagConfig
from .embedder import BaseEmbedder, LocalEmbedder
from .vector_store import VectorHit, VectorPoint, VectorStore, project_filter

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 240
DEFAULT_SEARCH_K = 5
PROJECT_PAGE_SIZE = 50


def preview(text: str, n: int = PREVIEW_CHARS) -> str:
    trimmed = text.strip()
    if len(trimmed) <= n:
        return trimmed
    return trimmed[:n] + "…"


def project_from_path(path: str) -> str:
    """Name of the directory holding *path*; ``root`` at the top level."""
    if not path:
        return "unknown"
    parent = os.path.dirname(path)
    if parent in ("", ".", "/"):
        return "root"
    return os.path.basename(parent)


def fit_embedder(embedder: BaseEmbedder, chunks: Sequence[Chunk]) -> BaseEmbedder:
    """Bind a local embedder to the vocabulary of *chunks*.

    Remote embedders carry no corpus state and are returned unchanged.
    """
    if isinstance(embedder, LocalEmbedder):
        return embedder.fit(chunk.text for chunk in chunks)
    return embedder


def point_key(chunk: Chunk) -> str:
    """Store key of *chunk*; unlike the chunk id it is unique per file."""
    return f"{chunk.path}:{chunk.position}"


def build_payload(chunk: Chunk, config: RagConfig) -> Dict[str, Any]:
    return {
        "path": chunk.path,
        "position": chunk.position,
        "basename": os.path.basename(chunk.path),
        "preview": preview(chunk.text),
        "file_type": config.file_type(chunk.path),
        "project": project_from_path(chunk.path),
    }


def iter_point_batches(
    chunks: Sequence[Chunk],
    embedder: BaseEmbedder,
    *,
    batch_size: int,
    config: RagConfig,
) -> Iterator[List[VectorPoint]]:
    """Embed *chunks* at most *batch_size* at a time and yield point batches."""
    if batch_size <= 0:
        batch_size = config.indexing.batch_size
    for start in range(0, len(chunks), batch_size):
        batch = chunks[start:start + batch_size]
        vectors = embedder.embed_texts([chunk.text for chunk in batch])
        yield [
            VectorPoint(
                id=chunk.id,
                vector=vectors[i],
                payload=build_payload(chunk, config),
                key=point_key(chunk),
            )
            for i, chunk in enumerate(batch)
        ]


def ingest_chunks(
    chunks: Sequence[Chunk],
    embedder: BaseEmbedder,
    store: VectorStore,
    *,
    batch_size: int = 0,
    config: Optional[RagConfig] = None,
) -> int:
    """Embed and upsert *chunks* into *store*; return the number stored."""
    config = config or RagConfig()
    total = 0
    for points in iter_point_batches(chunks, embedder, batch_size=batch_size, config=config):
        store.upsert(points)
        total += len(points)
        logger.debug("Upserted %d/%d points", total, len(chunks))
    logger.info("Ingested %d chunks", total)
    return total


def search_vectors(
    query: str,
    embedder: BaseEmbedder,
    store: VectorStore,
    *,
    k: int = DEFAULT_SEARCH_K,
    project: str = "",
    project_prefix: str = "",
) -> List[VectorHit]:
    """Similarity search with an optional exact project or project prefix.

    An exact *project* is filtered by the store.  A *project_prefix* is
    applied here, so a larger page is fetched first.  *embedder* must be the
    one whose vectors were ingested.
    """
    if k <= 0:
        k = DEFAULT_SEARCH_K
    query_vector = embedder.embed_query(query)

    project = project.strip()
    prefix = project_prefix.strip().lower()
    flt = project_filter(project) if project else None

    limit = k
    if flt is None and prefix:
        limit = min(100, max(20, k * 5))

    hits = store.search(query_vector, limit, flt)
    if flt is None and prefix:
        hits = [
            hit for hit in hits
            if str(hit.payload.get("project", "")).lower().startswith(prefix)
        ]
    return hits[:k]


def list_projects(store: VectorStore, *, page_size: int = 1000) -> List[Dict[str, Any]]:
    """Aggregate stored points per project, sorted by project name."""
    counts: Dict[str, int] = {}
    files: Dict[str, set] = {}
    offset: Any = None
    while True:
        points, offset = store.scroll(page_size, offset)
        for point in points:
            payload = point.payload
            project = project_from_path(str(payload.get("path", "")))
            counts[project] = counts.get(project, 0) + 1
            files.setdefault(project, set()).add(str(payload.get("basename", "")))
        if offset is None:
            break

    return [
        {"project": name, "total_chunks": counts[name], "files": len(files[name])}
        for name in sorted(counts)
    ]


def list_projects_filtered(
    store: VectorStore,
    *,
    prefix: str = "",
    offset: int = 0,
    limit: int = PROJECT_PAGE_SIZE,
) -> Tuple[List[Dict[str, Any]], int]:
    """Page through :func:`list_projects`, keeping names starting with *prefix*.

    Returns the page and the total number of matching projects.
    """
    projects = list_projects(store)
    wanted = prefix.strip().lower()
    if wanted:
        projects = [p for p in projects if p["project"].lower().startswith(wanted)]
    total = len(projects)
    if offset < 0:
        offset = 0
    if limit <= 0:
        limit = PROJECT_PAGE_SIZE
    return projects[offset:offset + limit], total
