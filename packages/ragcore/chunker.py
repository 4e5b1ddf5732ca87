"""Directory walking and deterministic, overlap-based character chunking."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .config import RagConfig

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 800


@dataclass(frozen=True)
class Chunk:
    id: str
    path: str
    text: str
    position: int


def chunk_spans(text: str, size: int, overlap: int) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` character offsets of each window over *text*.

    Non-positive *size* falls back to 800 and negative *overlap* to 0.  The
    start always advances by at least one character, so an overlap at or
    above *size* still terminates (effective overlap is ``size - 1``).
    """
    if size <= 0:
        size = DEFAULT_CHUNK_SIZE
    if overlap < 0:
        overlap = 0

    total = len(text)
    step = max(1, size - overlap)
    spans: List[Tuple[int, int]] = []
    start = 0
    while start < total:
        end = min(total, start + size)
        spans.append((start, end))
        if end >= total:
            break
        start += step
    return spans


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE, overlap: int = 0) -> List[str]:
    """Split *text* into overlapping windows of *size* characters."""
    return [text[start:end] for start, end in chunk_spans(text, size, overlap)]


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def _raise(exc: OSError) -> None:
    raise exc


def iter_files(
    root: Union[str, Path],
    *,
    config: RagConfig,
    include_code: Optional[bool] = None,
    follow_symlinks: Optional[bool] = None,
) -> Iterator[Path]:
    """Yield qualifying files under *root* in a stable, sorted order.

    Excluded directory names are pruned without descending into them.
    Symlinks are skipped unless *follow_symlinks* is set, and anything that
    resolves outside *root* is dropped.  Each resolved directory is walked
    once, so followed links cannot loop.  Files larger than the size guard
    are skipped silently; errors from the filesystem propagate.
    """
    indexing = config.indexing
    if include_code is None:
        include_code = indexing.include_code
    if follow_symlinks is None:
        follow_symlinks = indexing.follow_symlinks

    root_path = Path(root)
    if not root_path.is_dir():
        raise FileNotFoundError(f"docs directory not found: {root_path}")
    base = root_path.resolve()
    exclude = set(indexing.exclude_dirs)
    max_bytes = int(indexing.max_file_kb) * 1024
    # Resolved directories already walked; a followed link must not revisit one.
    visited = {base}

    for dirpath, dirnames, filenames in os.walk(
        root_path, onerror=_raise, followlinks=follow_symlinks
    ):
        current = Path(dirpath)
        kept = []
        for name in sorted(dirnames):
            if name in exclude:
                continue
            child = current / name
            if not follow_symlinks and child.is_symlink():
                continue
            resolved = child.resolve()
            if resolved in visited or not _is_under(resolved, base):
                logger.debug("Skipping %s: already walked or outside %s", child, base)
                continue
            visited.add(resolved)
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            path = current / name
            if path.is_symlink() and not follow_symlinks:
                continue
            if not _is_under(path.resolve(), base):
                logger.debug("Skipping %s: resolves outside %s", path, base)
                continue

            # Documentation is always indexed; code only on request.
            ext = path.suffix
            if not config.is_documentation_file(ext) and not (
                include_code and config.is_code_file(ext)
            ):
                continue

            if max_bytes > 0 and path.stat().st_size > max_bytes:
                logger.debug("Skipping %s: larger than %d KB", path, indexing.max_file_kb)
                continue
            yield path


def make_chunks(
    root: Union[str, Path],
    *,
    config: Optional[RagConfig] = None,
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
    include_code: Optional[bool] = None,
    follow_symlinks: Optional[bool] = None,
) -> List[Chunk]:
    """Walk *root* and return the chunks of every qualifying file."""
    config = config or RagConfig()
    if chunk_size is None:
        chunk_size = config.indexing.chunk_size
    if overlap is None:
        overlap = config.indexing.chunk_overlap

    chunks: List[Chunk] = []
    files = 0
    for path in iter_files(
        root, config=config, include_code=include_code, follow_symlinks=follow_symlinks
    ):
        text = path.read_bytes().decode("utf-8", errors="replace")
        parts = chunk_text(text, chunk_size, overlap)
        for position, part in enumerate(parts):
            chunks.append(
                Chunk(
                    id=f"{path.name}:{position}",
                    path=str(path),
                    text=part,
                    position=position,
                )
            )
        files += 1

    logger.info("Chunked %d files into %d chunks from %s", files, len(chunks), root)
    return chunks
