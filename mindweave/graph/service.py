"""Knowledge graph service.

The content graph links a user's recent items whose embeddings are similar.
A public graph is a frozen, shareable snapshot of the whole library with
PageRank scores and community labels attached to every node. Bodies are
never included in either.
"""

from __future__ import annotations

import secrets
from collections import Counter
from typing import Any

from mindweave.ai.embeddings import similar_pairs
from mindweave.config import GRAPH_EDGE_LIMIT, PUBLIC_GRAPH_EDGE_LIMIT, PUBLIC_GRAPH_MIN_SIMILARITY
from mindweave.content.repository import ContentRepository
from mindweave.graph.analytics import adjacency_matrix, label_propagation, pagerank
from mindweave.graph.repository import PublicGraphRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import log_event, time_block

logger = get_logger(__name__)

GRAPH_NODE_LIMIT_MIN = 5
GRAPH_NODE_LIMIT_MAX = 100
GRAPH_TITLE_MAX = 200
TOP_TAGS = 10


def get_content_graph(user_id: str, min_similarity: float = 0.5, limit: int = 50) -> dict[str, Any]:
    """
    Similarity graph over the user's most recent items.

    Only items that take part in at least one edge become nodes.
    """
    safe_limit = min(max(int(limit), GRAPH_NODE_LIMIT_MIN), GRAPH_NODE_LIMIT_MAX)
    items = ContentRepository.list_recent(user_id, safe_limit)
    if not items:
        return {"success": True, "data": {"nodes": [], "edges": []}}

    pairs = similar_pairs(user_id, min_similarity, GRAPH_EDGE_LIMIT)
    edges = [
        {"source": source, "target": target, "similarity": round(similarity, 4)}
        for source, target, similarity in pairs
    ]
    connected = {edge["source"] for edge in edges} | {edge["target"] for edge in edges}
    nodes = [
        {"id": item.id, "title": item.title, "type": item.type, "tags": item.tags}
        for item in items
        if item.id in connected
    ]
    return {"success": True, "data": {"nodes": nodes, "edges": edges}}


def build_public_graph_data(user_id: str) -> dict[str, Any] | None:
    """Nodes, weighted edges and stats for a user's library, or None if empty."""
    items = ContentRepository.list_all(user_id)
    if not items:
        return None

    index = {item.id: idx for idx, item in enumerate(items)}
    pairs = similar_pairs(
        user_id, PUBLIC_GRAPH_MIN_SIMILARITY, PUBLIC_GRAPH_EDGE_LIMIT, inclusive=False
    )
    edges = [
        {"source": source, "target": target, "weight": round(weight, 4)}
        for source, target, weight in pairs
        if source in index and target in index
    ]

    with time_block("graph.public.analytics"):
        adjacency = adjacency_matrix(
            len(items), [(index[e["source"]], index[e["target"]], e["weight"]) for e in edges]
        )
        ranks = pagerank(adjacency)
        communities = label_propagation(adjacency)

    tag_counts = Counter(tag for item in items for tag in item.all_tags)
    nodes = [
        {
            "id": item.id,
            "title": item.title,
            "type": item.type,
            "tags": item.all_tags,
            "community": communities[idx],
            "pageRank": round(float(ranks[idx]), 6),
        }
        for idx, item in enumerate(items)
    ]
    return {
        "nodes": nodes,
        "edges": edges,
        "stats": {
            "nodeCount": len(nodes),
            "edgeCount": len(edges),
            "communityCount": len(set(communities)),
            "topTags": [tag for tag, _ in tag_counts.most_common(TOP_TAGS)],
        },
    }


def generate_public_graph(
    user_id: str,
    title: str | None,
    description: str | None = None,
    settings: dict[str, Any] | None = None,
) -> dict[str, Any]:
    title = (title or "").strip()
    if not title:
        return {"success": False, "message": "Title is required"}
    if len(title) > GRAPH_TITLE_MAX:
        return {"success": False, "message": "Title is too long"}

    graph_data = build_public_graph_data(user_id)
    if graph_data is None:
        return {"success": False, "message": "No content to create a graph from"}

    graph_id = secrets.token_hex(16)
    PublicGraphRepository.create(
        user_id, graph_id, title, (description or "").strip() or None, graph_data, settings
    )
    stats = graph_data["stats"]
    log_event("graph.public.created", nodes=stats["nodeCount"], edges=stats["edgeCount"])
    return {"success": True, "data": {"graphId": graph_id}}


def get_public_graph(graph_id: str) -> dict[str, Any]:
    graph = PublicGraphRepository.get_by_graph_id(graph_id)
    if graph is None:
        return {"success": False, "message": "Graph not found"}
    return {"success": True, "data": graph}


def list_public_graphs(user_id: str) -> dict[str, Any]:
    return {"success": True, "graphs": PublicGraphRepository.list_by_user(user_id)}


def delete_public_graph(user_id: str, graph_id: str) -> dict[str, Any]:
    if not PublicGraphRepository.delete(graph_id, user_id):
        return {"success": False, "message": "Graph not found"}
    return {"success": True, "message": "Graph deleted"}
