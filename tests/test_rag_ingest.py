"""Tests for packages/ragcore/ingest.py and the in-memory vector store."""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "packages"))

from ragcore.chunker import Chunk, make_chunks
from ragcore.config import RagConfig
from ragcore.embedder import LocalEmbedder, OpenAIEmbedder
from ragcore.errors import VectorStoreError
from ragcore.ingest import (
    PREVIEW_CHARS,
    build_payload,
    fit_embedder,
    ingest_chunks,
    list_projects,
    list_projects_filtered,
    point_key,
    preview,
    project_from_path,
    search_vectors,
)
from ragcore.vector_store import InMemoryVectorStore, VectorPoint, project_filter


DIM = 32

CHUNKS = [
    Chunk(id="guide.md:0", path="/docs/alpha/guide.md", text="install the alpha service with docker", position=0),
    Chunk(id="guide.md:1", path="/docs/alpha/guide.md", text="configure alpha logging and retries", position=1),
    Chunk(id="notes.md:0", path="/docs/alpine/notes.md", text="alpine images keep containers small", position=0),
    Chunk(id="intro.md:0", path="/docs/beta/intro.md", text="beta release planning and docker builds", position=0),
    Chunk(id="readme.md:0", path="readme.md", text="top level readme about everything", position=0),
]


class RecordingStore(InMemoryVectorStore):
    def __init__(self, dimension: int) -> None:
        super().__init__(dimension)
        self.batches = []

    def upsert(self, points):
        self.batches.append(len(points))
        super().upsert(points)


def _ingested_store():
    embedder = fit_embedder(LocalEmbedder(DIM), CHUNKS)
    store = InMemoryVectorStore(DIM)
    ingest_chunks(CHUNKS, embedder, store)
    return embedder, store


class HelperTests(unittest.TestCase):
    def test_preview_trims_and_truncates(self) -> None:
        self.assertEqual(preview("  short text \n"), "short text")
        long_text = "x" * (PREVIEW_CHARS + 10)
        result = preview(long_text)
        self.assertEqual(len(result), PREVIEW_CHARS + 1)
        self.assertTrue(result.endswith("…"))

    def test_project_from_path(self) -> None:
        self.assertEqual(project_from_path("/docs/alpha/guide.md"), "alpha")
        self.assertEqual(project_from_path("readme.md"), "root")
        self.assertEqual(project_from_path("/readme.md"), "root")
        self.assertEqual(project_from_path(""), "unknown")

    def test_build_payload_fields(self) -> None:
        payload = build_payload(CHUNKS[1], RagConfig())
        self.assertEqual(
            payload,
            {
                "path": "/docs/alpha/guide.md",
                "position": 1,
                "basename": "guide.md",
                "preview": "configure alpha logging and retries",
                "file_type": "documentation",
                "project": "alpha",
            },
        )

    def test_fit_embedder_binds_vocabulary(self) -> None:
        fitted = fit_embedder(LocalEmbedder(DIM), CHUNKS)
        self.assertIsNotNone(fitted.vocabulary)
        self.assertIn("docker", fitted.vocabulary)

    def test_fit_embedder_leaves_remote_embedders(self) -> None:
        remote = OpenAIEmbedder(api_key="sk-test", dimension=DIM, client=MagicMock())
        self.assertIs(fit_embedder(remote, CHUNKS), remote)


class IngestTests(unittest.TestCase):
    def test_batches_respect_batch_size(self) -> None:
        embedder = fit_embedder(LocalEmbedder(DIM), CHUNKS)
        store = RecordingStore(DIM)
        stored = ingest_chunks(CHUNKS, embedder, store, batch_size=2)
        self.assertEqual(stored, len(CHUNKS))
        self.assertEqual(store.batches, [2, 2, 1])
        self.assertEqual(store.count(), len(CHUNKS))

    def test_default_batch_size_from_config(self) -> None:
        config = RagConfig()
        config.indexing.batch_size = 3
        embedder = fit_embedder(LocalEmbedder(DIM), CHUNKS)
        store = RecordingStore(DIM)
        ingest_chunks(CHUNKS, embedder, store, config=config)
        self.assertEqual(store.batches, [3, 2])

    def test_reingest_overwrites_by_id(self) -> None:
        embedder, store = _ingested_store()
        ingest_chunks(CHUNKS, embedder, store)
        self.assertEqual(store.count(), len(CHUNKS))

    def test_empty_input_stores_nothing(self) -> None:
        embedder = fit_embedder(LocalEmbedder(DIM), CHUNKS)
        store = RecordingStore(DIM)
        self.assertEqual(ingest_chunks([], embedder, store), 0)
        self.assertEqual(store.batches, [])

    def test_same_basename_in_two_projects_keeps_both(self) -> None:
        with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
            for project in ("alpha", "beta"):
                folder = Path(tmpdir) / project
                folder.mkdir()
                (folder / "README.md").write_text(f"{project} project readme", encoding="utf-8")
            chunks = make_chunks(tmpdir)

        self.assertEqual([chunk.id for chunk in chunks], ["README.md:0", "README.md:0"])
        self.assertNotEqual(point_key(chunks[0]), point_key(chunks[1]))

        embedder = fit_embedder(LocalEmbedder(DIM), chunks)
        store = InMemoryVectorStore(DIM)
        self.assertEqual(ingest_chunks(chunks, embedder, store), 2)
        self.assertEqual(store.count(), 2)
        self.assertEqual(
            [p["project"] for p in list_projects(store)], ["alpha", "beta"]
        )
        hits = search_vectors("readme", embedder, store, k=5)
        self.assertEqual([hit.id for hit in hits], ["README.md:0", "README.md:0"])

    def test_dimension_mismatch_raises(self) -> None:
        embedder = fit_embedder(LocalEmbedder(DIM), CHUNKS)
        store = InMemoryVectorStore(DIM * 2)
        with self.assertRaises(VectorStoreError):
            ingest_chunks(CHUNKS, embedder, store)


class SearchVectorsTests(unittest.TestCase):
    def test_best_match_first(self) -> None:
        embedder, store = _ingested_store()
        hits = search_vectors("alpine containers", embedder, store, k=2)
        self.assertEqual(len(hits), 2)
        self.assertEqual(hits[0].id, "notes.md:0")
        self.assertGreaterEqual(hits[0].score, hits[1].score)

    def test_exact_project_filter(self) -> None:
        embedder, store = _ingested_store()
        hits = search_vectors("docker", embedder, store, k=5, project="alpha")
        self.assertEqual({hit.payload["project"] for hit in hits}, {"alpha"})
        self.assertEqual(len(hits), 2)

    def test_project_prefix_filter(self) -> None:
        embedder, store = _ingested_store()
        hits = search_vectors("docker", embedder, store, k=5, project_prefix="AL")
        self.assertEqual(
            sorted({hit.payload["project"] for hit in hits}), ["alpha", "alpine"]
        )

    def test_non_positive_k_uses_default(self) -> None:
        embedder, store = _ingested_store()
        hits = search_vectors("docker", embedder, store, k=0)
        self.assertEqual(len(hits), len(CHUNKS))


class InMemoryStoreTests(unittest.TestCase):
    def test_search_filter_and_cosine(self) -> None:
        store = InMemoryVectorStore(2)
        store.upsert(
            [
                VectorPoint("a", np.array([1.0, 0.0]), {"project": "x"}),
                VectorPoint("b", np.array([0.0, 1.0]), {"project": "y"}),
                VectorPoint("c", np.array([0.0, 0.0]), {"project": "x"}),
            ]
        )
        hits = store.search(np.array([2.0, 0.0]), 3)
        self.assertEqual(hits[0].id, "a")
        self.assertAlmostEqual(hits[0].score, 1.0, places=6)
        self.assertEqual({hit.id for hit in hits[1:]}, {"b", "c"})

        filtered = store.search(np.array([0.0, 1.0]), 3, project_filter("x"))
        self.assertEqual({hit.id for hit in filtered}, {"a", "c"})
        self.assertEqual(store.search(np.array([1.0, 0.0]), 0), [])

    def test_query_dimension_checked(self) -> None:
        store = InMemoryVectorStore(3)
        with self.assertRaises(VectorStoreError):
            store.search(np.zeros(2), 1)

    def test_scroll_pages(self) -> None:
        store = InMemoryVectorStore(1)
        store.upsert([VectorPoint(str(i), np.array([1.0])) for i in range(5)])
        page, offset = store.scroll(2)
        self.assertEqual([p.id for p in page], ["0", "1"])
        self.assertEqual(offset, 2)
        page, offset = store.scroll(2, offset)
        page, offset = store.scroll(2, offset)
        self.assertEqual([p.id for p in page], ["4"])
        self.assertIsNone(offset)


class ListProjectsTests(unittest.TestCase):
    def test_aggregates_per_project(self) -> None:
        _, store = _ingested_store()
        projects = list_projects(store, page_size=2)
        self.assertEqual(
            projects,
            [
                {"project": "alpha", "total_chunks": 2, "files": 1},
                {"project": "alpine", "total_chunks": 1, "files": 1},
                {"project": "beta", "total_chunks": 1, "files": 1},
                {"project": "root", "total_chunks": 1, "files": 1},
            ],
        )

    def test_filtered_paging(self) -> None:
        _, store = _ingested_store()
        page, total = list_projects_filtered(store, prefix="al", offset=1, limit=1)
        self.assertEqual(total, 2)
        self.assertEqual([p["project"] for p in page], ["alpine"])

        page, total = list_projects_filtered(store, offset=-5, limit=0)
        self.assertEqual(total, 4)
        self.assertEqual(len(page), 4)

    def test_empty_store(self) -> None:
        self.assertEqual(list_projects(InMemoryVectorStore(4)), [])


if __name__ == "__main__":
    unittest.main()
