"""
Topic clustering of a user's content.

k-means++ over the stored embeddings (Euclidean distance), then one LLM call
per cluster for a name. Zero vectors are left out: they carry no topic.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from mindweave.ai.generation import generate_cluster_name
from mindweave.config import CLUSTER_MAX_ITERATIONS, CLUSTER_MAX_K
from mindweave.infrastructure.database import get_db_connection
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import time_block

logger = get_logger(__name__)

PREVIEW_SIZE = 5


@dataclass
class ContentCluster:
    id: str
    name: str
    description: str
    content_ids: list[str] = field(default_factory=list)
    content_previews: list[dict[str, str]] = field(default_factory=list)
    size: int = 0

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "contentIds": self.content_ids,
            "contentPreviews": self.content_previews,
            "size": self.size,
        }


def _init_centroids(points: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """k-means++ seeding: each next centroid drawn proportionally to squared distance."""
    n = points.shape[0]
    centroids = [points[rng.integers(n)]]
    for _ in range(1, k):
        dists = np.min(
            np.linalg.norm(points[:, None, :] - np.asarray(centroids)[None, :, :], axis=2), axis=1
        )
        weights = dists**2
        total = weights.sum()
        if total == 0:
            centroids.append(points[rng.integers(n)])
            continue
        idx = int(np.searchsorted(np.cumsum(weights), rng.random() * total))
        centroids.append(points[min(idx, n - 1)])
    return np.asarray(centroids, dtype=np.float64)


def kmeans(
    points: np.ndarray,
    k: int,
    max_iterations: int = CLUSTER_MAX_ITERATIONS,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """
    Cluster rows of points into k groups.

    Returns:
        Array of cluster indices, one per row. Empty clusters keep their
        previous centroid.
    """
    n = points.shape[0]
    if n == 0 or k <= 0:
        return np.zeros(0, dtype=int)
    k = min(k, n)
    rng = rng or np.random.default_rng()

    centroids = _init_centroids(points, k, rng)
    assignments: np.ndarray | None = None

    for _ in range(max_iterations):
        dists = np.linalg.norm(points[:, None, :] - centroids[None, :, :], axis=2)
        new_assignments = np.argmin(dists, axis=1)
        if assignments is not None and np.array_equal(assignments, new_assignments):
            break
        assignments = new_assignments
        for c in range(k):
            members = points[assignments == c]
            if len(members):
                centroids[c] = members.mean(axis=0)

    return assignments if assignments is not None else np.zeros(n, dtype=int)


def choose_k(num_items: int, num_clusters: int) -> int:
    return min(num_clusters, max(2, math.isqrt(num_items)), CLUSTER_MAX_K)


def _load_embedded_content(user_id: str) -> list[tuple[str, str, str, list[float]]]:
    with get_db_connection() as conn:
        rows = conn.execute(
            """
            SELECT c.id, c.title, c.type, e.embedding
            FROM content c
            JOIN embeddings e ON e.content_id = c.id
            WHERE c.user_id = ?
            ORDER BY c.created_at DESC
            """,
            (user_id,),
        ).fetchall()
    data = []
    for row in rows:
        vector = json.loads(row["embedding"])
        if any(vector):
            data.append((row["id"], row["title"], row["type"], vector))
    return data


def cluster_content(
    user_id: str, num_clusters: int = 5, rng: np.random.Generator | None = None
) -> list[ContentCluster]:
    """
    Group a user's embedded content by topic.

    Returns:
        Clusters sorted by size (largest first); [] with fewer than two items
        or on error.
    """
    try:
        data = _load_embedded_content(user_id)
        if len(data) < 2:
            return []

        points = np.asarray([row[3] for row in data], dtype=np.float64)
        with time_block("clustering.kmeans"):
            assignments = kmeans(points, choose_k(len(data), num_clusters), rng=rng)

        groups: dict[int, list[tuple[str, str, str, list[float]]]] = {}
        for row, cluster_idx in zip(data, assignments, strict=True):
            groups.setdefault(int(cluster_idx), []).append(row)

        clusters = []
        for cluster_idx, members in sorted(groups.items()):
            naming = generate_cluster_name([{"title": m[1], "type": m[2]} for m in members])
            clusters.append(
                ContentCluster(
                    id=f"cluster-{cluster_idx}",
                    name=naming["name"],
                    description=naming["description"],
                    content_ids=[m[0] for m in members],
                    content_previews=[
                        {"id": m[0], "title": m[1], "type": m[2]} for m in members[:PREVIEW_SIZE]
                    ],
                    size=len(members),
                )
            )

        clusters.sort(key=lambda c: c.size, reverse=True)
        return clusters
    except Exception as e:
        logger.error("Error clustering content: %s", e)
        return []


def get_content_cluster(user_id: str, content_id: str) -> ContentCluster | None:
    """The cluster containing content_id, if any."""
    for cluster in cluster_content(user_id):
        if content_id in cluster.content_ids:
            return cluster
    return None
