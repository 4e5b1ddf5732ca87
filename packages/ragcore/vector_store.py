"""Vector-store collaborators: an exact in-memory store and a Qdrant REST client.

Both speak the same small interface: points go in as ``(id, vector,
payload)`` and come back from a search as ``(id, score, payload)``.
Filters use Qdrant's ``{"must": [{"key": ..., "match": {"value": ...}}]}``
shape so callers can build one filter for either backend.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import VectorStoreError
from .http_client import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_SCROLL_LIMIT = 1000
MAX_SCROLL_LIMIT = 10000
# Qdrant point ids must be integers or UUIDs, so point keys are mapped onto
# uuid5 values in this namespace and the chunk id is kept in the payload.
POINT_ID_NAMESPACE = uuid.UUID("6f1c2a8e-3d55-4c1b-9a0e-2b7d4f0c9e11")
CHUNK_ID_KEY = "chunk_id"


@dataclass
class VectorPoint:
    """A vector to store.

    *id* is the chunk id reported back by searches.  *key* identifies the
    stored point and defaults to *id*; chunk ids repeat across directories,
    so ingestion keys points by path and position instead.
    """

    id: str
    vector: np.ndarray
    payload: Dict[str, Any] = field(default_factory=dict)
    key: str = ""

    @property
    def store_key(self) -> str:
        return self.key or self.id


@dataclass
class VectorHit:
    id: str
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScrollPoint:
    id: str
    payload: Dict[str, Any] = field(default_factory=dict)


def project_filter(project: str) -> dict:
    """Filter matching points whose ``project`` payload equals *project*."""
    return {"must": [{"key": "project", "match": {"value": project}}]}


def _matches(payload: Dict[str, Any], flt: Optional[dict]) -> bool:
    if not flt:
        return True
    for cond in flt.get("must", []):
        if payload.get(cond["key"]) != cond.get("match", {}).get("value"):
            return False
    return True


def _clamp_scroll_limit(limit: int) -> int:
    if limit <= 0 or limit > MAX_SCROLL_LIMIT:
        return DEFAULT_SCROLL_LIMIT
    return limit


class VectorStore:
    """Minimal interface the ingestion and query helpers rely on."""

    dimension: int

    def upsert(self, points: Sequence[VectorPoint]) -> None:
        raise NotImplementedError

    def search(self, vector: np.ndarray, k: int, flt: Optional[dict] = None) -> List[VectorHit]:
        raise NotImplementedError

    def scroll(self, limit: int = DEFAULT_SCROLL_LIMIT, offset: Any = None) -> Tuple[List[ScrollPoint], Any]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError


class InMemoryVectorStore(VectorStore):
    """Exact cosine search over points kept in process memory."""

    def __init__(self, dimension: int) -> None:
        self.dimension = int(dimension)
        self._points: Dict[str, VectorPoint] = {}

    def upsert(self, points: Sequence[VectorPoint]) -> None:
        for point in points:
            vector = np.asarray(point.vector, dtype="float32")
            if vector.shape != (self.dimension,):
                raise VectorStoreError(
                    f"point {point.id!r} has shape {vector.shape}, expected ({self.dimension},)"
                )
            self._points[point.store_key] = VectorPoint(
                point.id, vector, dict(point.payload), point.store_key
            )

    def search(self, vector: np.ndarray, k: int, flt: Optional[dict] = None) -> List[VectorHit]:
        query = np.asarray(vector, dtype="float32")
        if query.shape != (self.dimension,):
            raise VectorStoreError(f"query has shape {query.shape}, expected ({self.dimension},)")
        if k <= 0:
            return []
        query_norm = float(np.linalg.norm(query))

        hits: List[VectorHit] = []
        for point in self._points.values():
            if not _matches(point.payload, flt):
                continue
            point_norm = float(np.linalg.norm(point.vector))
            if query_norm == 0 or point_norm == 0:
                score = 0.0
            else:
                score = float(np.dot(query, point.vector)) / (query_norm * point_norm)
            hits.append(VectorHit(point.id, score, dict(point.payload)))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:k]

    def scroll(self, limit: int = DEFAULT_SCROLL_LIMIT, offset: Any = None) -> Tuple[List[ScrollPoint], Any]:
        limit = _clamp_scroll_limit(limit)
        start = int(offset or 0)
        keys = list(self._points)
        page = [
            ScrollPoint(self._points[key].id, dict(self._points[key].payload))
            for key in keys[start:start + limit]
        ]
        next_offset = start + limit if start + limit < len(keys) else None
        return page, next_offset

    def count(self) -> int:
        return len(self._points)


def point_uuid(point_id: str) -> str:
    return str(uuid.uuid5(POINT_ID_NAMESPACE, point_id))


class QdrantStore(VectorStore):
    """Thin client for the Qdrant REST API."""

    def __init__(
        self,
        url: str = "http://localhost:6333",
        collection: str = "mcp_rag",
        dimension: int = 300,
        client: Optional[HttpClient] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.collection = collection
        self.dimension = int(dimension)
        self.client = client or HttpClient(self.url, timeout=15.0)

    def _check(self, response, action: str) -> Any:
        if response.status_code >= 300:
            raise VectorStoreError(f"{action} http {response.status_code}")
        if not response.content:
            return {}
        return response.json()

    def ensure_collection(self) -> None:
        response = self.client.put(
            f"/collections/{self.collection}",
            json={"vectors": {"size": self.dimension, "distance": "Cosine"}},
        )
        # 409: collection already exists.
        if response.status_code == 409:
            return
        self._check(response, "ensure collection")
        logger.info("Qdrant collection %s ready (dim=%d)", self.collection, self.dimension)

    def health_check(self) -> None:
        self._check(self.client.get("/collections"), "health")

    def count(self) -> int:
        body = self._check(
            self.client.post(f"/collections/{self.collection}/points/count", json={"exact": True}),
            "count",
        )
        return int(body.get("result", {}).get("count", 0))

    def upsert(self, points: Sequence[VectorPoint]) -> None:
        if not points:
            return
        body = {
            "points": [
                {
                    "id": point_uuid(point.store_key),
                    "vector": np.asarray(point.vector, dtype="float32").tolist(),
                    "payload": {**point.payload, CHUNK_ID_KEY: point.id},
                }
                for point in points
            ]
        }
        self._check(
            self.client.put(
                f"/collections/{self.collection}/points",
                json=body,
                params={"wait": "true"},
            ),
            "upsert",
        )

    def search(self, vector: np.ndarray, k: int, flt: Optional[dict] = None) -> List[VectorHit]:
        body: Dict[str, Any] = {
            "vector": np.asarray(vector, dtype="float32").tolist(),
            "limit": k,
            "with_payload": True,
        }
        if flt is not None:
            body["filter"] = flt
        result = self._check(
            self.client.post(f"/collections/{self.collection}/points/search", json=body),
            "search",
        )
        hits: List[VectorHit] = []
        for item in result.get("result", []):
            payload = item.get("payload") or {}
            hits.append(
                VectorHit(
                    id=str(payload.get(CHUNK_ID_KEY, item.get("id"))),
                    score=float(item.get("score", 0.0)),
                    payload=payload,
                )
            )
        return hits

    def scroll(self, limit: int = DEFAULT_SCROLL_LIMIT, offset: Any = None) -> Tuple[List[ScrollPoint], Any]:
        body: Dict[str, Any] = {"limit": _clamp_scroll_limit(limit), "with_payload": True}
        if offset is not None:
            body["offset"] = offset
        result = self._check(
            self.client.post(f"/collections/{self.collection}/points/scroll", json=body),
            "scroll",
        ).get("result", {})
        points = [
            ScrollPoint(
                id=str((p.get("payload") or {}).get(CHUNK_ID_KEY, p.get("id"))),
                payload=p.get("payload") or {},
            )
            for p in result.get("points", [])
        ]
        return points, result.get("next_page_offset")
