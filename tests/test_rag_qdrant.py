"""Tests for the Qdrant REST store and the retrying HTTP client."""

import json
import os
import sys
import unittest
import uuid
from unittest.mock import MagicMock, patch

import numpy as np
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "packages"))

from ragcore.errors import VectorStoreError
from ragcore.http_client import HttpClient
from ragcore.vector_store import (
    CHUNK_ID_KEY,
    QdrantStore,
    VectorPoint,
    point_uuid,
    project_filter,
)


def _response(status: int, body=None) -> requests.Response:
    response = requests.Response()
    response.status_code = int(status)
    response.url = "http://qdrant.test"
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.encoding = "utf-8"
    return response


def _store(client: MagicMock, dimension: int = 3) -> QdrantStore:
    return QdrantStore("http://qdrant.test/", "docs", dimension, client=client)


class PointIdTests(unittest.TestCase):
    def test_point_uuid_is_stable_uuid(self) -> None:
        first = point_uuid("guide.md:0")
        self.assertEqual(first, point_uuid("guide.md:0"))
        self.assertNotEqual(first, point_uuid("guide.md:1"))
        self.assertEqual(str(uuid.UUID(first)), first)


class QdrantStoreTests(unittest.TestCase):
    def test_ensure_collection_creates(self) -> None:
        client = MagicMock()
        client.put.return_value = _response(200, {"result": True})
        _store(client, 300).ensure_collection()
        client.put.assert_called_once_with(
            "/collections/docs",
            json={"vectors": {"size": 300, "distance": "Cosine"}},
        )

    def test_ensure_collection_tolerates_conflict(self) -> None:
        client = MagicMock()
        client.put.return_value = _response(409, {"status": {"error": "exists"}})
        _store(client).ensure_collection()

    def test_ensure_collection_failure_raises(self) -> None:
        client = MagicMock()
        client.put.return_value = _response(500)
        with self.assertRaises(VectorStoreError):
            _store(client).ensure_collection()

    def test_health_check(self) -> None:
        client = MagicMock()
        client.get.return_value = _response(200, {"result": {"collections": []}})
        _store(client).health_check()
        client.get.return_value = _response(503)
        with self.assertRaises(VectorStoreError):
            _store(client).health_check()

    def test_upsert_maps_ids_and_keeps_chunk_id(self) -> None:
        client = MagicMock()
        client.put.return_value = _response(200, {"result": {"status": "completed"}})
        _store(client).upsert(
            [VectorPoint("guide.md:0", np.array([0.1, 0.2, 0.3]), {"project": "alpha"})]
        )

        args, kwargs = client.put.call_args
        self.assertEqual(args[0], "/collections/docs/points")
        self.assertEqual(kwargs["params"], {"wait": "true"})
        point = kwargs["json"]["points"][0]
        self.assertEqual(point["id"], point_uuid("guide.md:0"))
        self.assertEqual(point["payload"], {"project": "alpha", CHUNK_ID_KEY: "guide.md:0"})
        self.assertEqual(len(point["vector"]), 3)
        self.assertIsInstance(point["vector"][0], float)

    def test_upsert_keys_points_by_store_key(self) -> None:
        client = MagicMock()
        client.put.return_value = _response(200, {"result": {"status": "completed"}})
        _store(client).upsert(
            [
                VectorPoint("README.md:0", np.zeros(3), {}, key="/docs/alpha/README.md:0"),
                VectorPoint("README.md:0", np.zeros(3), {}, key="/docs/beta/README.md:0"),
            ]
        )

        points = client.put.call_args.kwargs["json"]["points"]
        self.assertEqual(
            [p["id"] for p in points],
            [point_uuid("/docs/alpha/README.md:0"), point_uuid("/docs/beta/README.md:0")],
        )
        self.assertEqual([p["payload"][CHUNK_ID_KEY] for p in points], ["README.md:0"] * 2)

    def test_upsert_empty_is_noop(self) -> None:
        client = MagicMock()
        _store(client).upsert([])
        client.put.assert_not_called()

    def test_search_maps_hits(self) -> None:
        client = MagicMock()
        client.post.return_value = _response(
            200,
            {
                "result": [
                    {
                        "id": point_uuid("guide.md:0"),
                        "score": 0.91,
                        "payload": {CHUNK_ID_KEY: "guide.md:0", "project": "alpha"},
                    },
                    {"id": 7, "score": 0.5, "payload": None},
                ]
            },
        )
        flt = project_filter("alpha")
        hits = _store(client).search(np.array([1.0, 0.0, 0.0]), 2, flt)

        self.assertEqual([hit.id for hit in hits], ["guide.md:0", "7"])
        self.assertAlmostEqual(hits[0].score, 0.91)
        self.assertEqual(hits[1].payload, {})
        args, kwargs = client.post.call_args
        self.assertEqual(args[0], "/collections/docs/points/search")
        self.assertEqual(kwargs["json"]["filter"], flt)
        self.assertEqual(kwargs["json"]["limit"], 2)
        self.assertTrue(kwargs["json"]["with_payload"])

    def test_search_error_raises(self) -> None:
        client = MagicMock()
        client.post.return_value = _response(400, {"status": {"error": "bad"}})
        with self.assertRaises(VectorStoreError):
            _store(client).search(np.zeros(3), 1)

    def test_scroll_returns_next_offset(self) -> None:
        client = MagicMock()
        client.post.return_value = _response(
            200,
            {
                "result": {
                    "points": [{"id": "u1", "payload": {CHUNK_ID_KEY: "a.md:0", "path": "/d/a.md"}}],
                    "next_page_offset": "u2",
                }
            },
        )
        points, offset = _store(client).scroll(50000, offset="u1")
        self.assertEqual(points[0].id, "a.md:0")
        self.assertEqual(offset, "u2")
        body = client.post.call_args.kwargs["json"]
        self.assertEqual(body["limit"], 1000)
        self.assertEqual(body["offset"], "u1")

    def test_count(self) -> None:
        client = MagicMock()
        client.post.return_value = _response(200, {"result": {"count": 42}})
        self.assertEqual(_store(client).count(), 42)
        client.post.assert_called_once_with(
            "/collections/docs/points/count", json={"exact": True}
        )


class HttpClientRetryTests(unittest.TestCase):
    def test_retries_server_errors_then_succeeds(self) -> None:
        client = HttpClient("http://qdrant.test", max_retries=2, backoff_factor=0.01)
        client.session = MagicMock()
        client.session.request.side_effect = [_response(503), _response(200, {"ok": True})]

        with patch("ragcore.http_client.time.sleep") as sleep:
            response = client.get("/collections")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(sleep.call_count, 1)
        self.assertEqual(client.session.request.call_count, 2)
        self.assertEqual(client.session.request.call_args.args, ("GET", "http://qdrant.test/collections"))

    def test_gives_up_after_max_retries(self) -> None:
        client = HttpClient("http://qdrant.test", max_retries=1, backoff_factor=0.01)
        client.session = MagicMock()
        client.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with patch("ragcore.http_client.time.sleep"):
            with self.assertRaises(requests.exceptions.RetryError):
                client.post("/points", json={})
        self.assertEqual(client.session.request.call_count, 2)

    def test_post_json_raises_for_status(self) -> None:
        client = HttpClient("http://api.test", max_retries=0)
        client.session = MagicMock()
        client.session.request.return_value = _response(401, {"error": "unauthorized"})
        with self.assertRaises(requests.HTTPError):
            client.post_json("/v1/embeddings", {"input": ["x"]})


if __name__ == "__main__":
    unittest.main()
