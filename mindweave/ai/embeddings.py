"""
Embeddings and semantic search.

Vectors live in the embeddings table as JSON text; similarity is computed in
SQL through the cosine_distance() function registered on every connection.
Zero vectors (failed embeddings) have no distance and never match.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from mindweave.config import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    EMBEDDING_TEXT_MAX_CHARS,
    RECOMMENDATION_LIMIT_MAX,
    RECOMMENDATION_MIN_SIMILARITY,
    SEMANTIC_LIMIT_MAX,
    SEMANTIC_QUERY_MAX,
)
from mindweave.content.models import ContentItem, to_iso, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.llm.gemini import embed_text, is_llm_configured
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter

logger = get_logger(__name__)


def zero_vector() -> list[float]:
    return [0.0] * EMBEDDING_DIMENSIONS


def is_zero_vector(vector: list[float]) -> bool:
    return not any(vector)


def generate_embedding(text: str, task_type: str = "RETRIEVAL_DOCUMENT") -> list[float]:
    """
    Embed text. Returns the zero vector when unconfigured or on any error.
    """
    if not is_llm_configured():
        logger.warning("Skipping embedding - LLM not configured")
        return zero_vector()

    try:
        vector = embed_text(text, task_type=task_type)
    except Exception as e:
        logger.error("Error generating embedding: %s", e)
        counter("ai.embedding.errors")
        return zero_vector()

    if len(vector) != EMBEDDING_DIMENSIONS:
        logger.warning(
            "Embedding has %d dimensions, expected %d", len(vector), EMBEDDING_DIMENSIONS
        )
        return zero_vector()
    counter("ai.embedding.calls")
    return vector


def embedding_text(item: ContentItem) -> str:
    """Text embedded for an item: title, body, then all tags."""
    parts = [item.title]
    if item.body:
        parts.append(item.body)
    tags = item.all_tags
    if tags:
        parts.append(f"Tags: {', '.join(tags)}")
    return "\n\n".join(parts)[:EMBEDDING_TEXT_MAX_CHARS]


@retry_on_db_lock()
def _store_embedding(content_id: str, vector: list[float]) -> None:
    with db_transaction() as conn:
        conn.execute(
            """
            INSERT INTO embeddings (id, content_id, embedding, model, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(content_id) DO UPDATE SET
                embedding = excluded.embedding,
                model = excluded.model,
                created_at = excluded.created_at
            """,
            (str(uuid.uuid4()), content_id, json.dumps(vector), EMBEDDING_MODEL, to_iso(utc_now())),
        )


def upsert_content_embedding(content_id: str) -> None:
    """
    Embed a content item and store the vector (insert or replace).

    Raises:
        ValueError: If the content does not exist
    """
    item = ContentRepository.get_by_id(content_id)
    if item is None:
        raise ValueError(f"Content not found: {content_id}")

    vector = generate_embedding(embedding_text(item))
    _store_embedding(content_id, vector)
    logger.info("Stored embedding for content %s", content_id)


def get_embedding(content_id: str) -> list[float] | None:
    with get_db_connection() as conn:
        row = conn.execute(
            "SELECT embedding FROM embeddings WHERE content_id = ?", (content_id,)
        ).fetchone()
    return json.loads(row["embedding"]) if row else None


def _similarity_rows(sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
    with get_db_connection() as conn:
        rows = conn.execute(sql, params).fetchall()
    results = []
    for row in rows:
        item = ContentItem.from_db_row(dict(row))
        results.append({**item.to_api_dict(), "similarity": round(float(row["similarity"]), 4)})
    return results


def search_similar_content(query: str, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
    """
    User's items closest to query, most similar first.

    Falls back to the most recent items (similarity 0) when the query could not
    be embedded or nothing matched. Returns [] on database errors.
    """
    try:
        query_vector = generate_embedding(query, task_type="RETRIEVAL_QUERY")
        results: list[dict[str, Any]] = []
        if not is_zero_vector(query_vector):
            encoded = json.dumps(query_vector)
            results = _similarity_rows(
                """
                SELECT c.*, 1 - cosine_distance(e.embedding, ?) AS similarity
                FROM content c
                JOIN embeddings e ON e.content_id = c.id
                WHERE c.user_id = ?
                  AND cosine_distance(e.embedding, ?) IS NOT NULL
                ORDER BY cosine_distance(e.embedding, ?) ASC
                LIMIT ?
                """,
                (encoded, user_id, encoded, encoded, limit),
            )

        if not results:
            counter("search.semantic.fallback_recent")
            results = [
                {**item.to_api_dict(), "similarity": 0.0}
                for item in ContentRepository.list_recent(user_id, limit)
            ]
        return results
    except Exception as e:
        logger.error("Semantic search failed: %s", e)
        counter("search.semantic.errors")
        return []


def get_recommendations(
    content_id: str,
    user_id: str,
    limit: int = 5,
    min_similarity: float = RECOMMENDATION_MIN_SIMILARITY,
) -> list[dict[str, Any]]:
    """
    The user's other items most similar to content_id.

    Returns [] when the item has no usable embedding or on errors.
    """
    try:
        vector = get_embedding(content_id)
        if vector is None or is_zero_vector(vector):
            return []
        encoded = json.dumps(vector)
        results = _similarity_rows(
            """
            SELECT c.*, 1 - cosine_distance(e.embedding, ?) AS similarity
            FROM content c
            JOIN embeddings e ON e.content_id = c.id
            WHERE c.user_id = ?
              AND c.id != ?
              AND cosine_distance(e.embedding, ?) IS NOT NULL
            ORDER BY cosine_distance(e.embedding, ?) ASC
            LIMIT ?
            """,
            (encoded, user_id, content_id, encoded, encoded, limit),
        )
        return [r for r in results if r["similarity"] >= min_similarity]
    except Exception as e:
        logger.error("Recommendations failed for %s: %s", content_id, e)
        return []


def validate_semantic_query(query: str | None) -> str:
    """
    Trim and check a semantic search query.

    Raises:
        ValueError: If the query is empty or too long
    """
    cleaned = (query or "").strip()
    if not cleaned:
        raise ValueError("Please enter a search query.")
    if len(cleaned) > SEMANTIC_QUERY_MAX:
        raise ValueError(
            f"Query is too long. Please use fewer than {SEMANTIC_QUERY_MAX} characters."
        )
    return cleaned


def clamp_limit(limit: int, upper: int) -> int:
    return max(1, min(int(limit), upper))


def semantic_search(user_id: str, query: str, limit: int = 10) -> dict[str, Any]:
    """Validated semantic search for the API."""
    try:
        cleaned = validate_semantic_query(query)
    except ValueError as e:
        return {"success": False, "message": str(e), "results": []}

    results = search_similar_content(cleaned, user_id, clamp_limit(limit, SEMANTIC_LIMIT_MAX))
    return {"success": True, "results": results}


def recommendations(user_id: str, content_id: str, limit: int = 5) -> dict[str, Any]:
    """Recommendations for an owned item for the API."""
    if ContentRepository.get_owned(content_id, user_id) is None:
        return {"success": False, "message": "Content not found", "recommendations": []}
    results = get_recommendations(
        content_id, user_id, clamp_limit(limit, RECOMMENDATION_LIMIT_MAX)
    )
    return {"success": True, "recommendations": results}


def similar_pairs(
    user_id: str,
    min_similarity: float,
    limit: int,
    max_similarity: float | None = None,
    inclusive: bool = True,
) -> list[tuple[str, str, float]]:
    """
    Pairs of a user's items by embedding similarity, most similar first.

    Each unordered pair appears once with source id < target id.

    Args:
        inclusive: Whether min_similarity itself qualifies
        max_similarity: Upper bound (inclusive), if any
    """
    lower_op = ">=" if inclusive else ">"
    sql = f"""
        SELECT e1.content_id AS source, e2.content_id AS target,
               1 - cosine_distance(e1.embedding, e2.embedding) AS similarity
        FROM embeddings e1
        JOIN embeddings e2 ON e1.content_id < e2.content_id
        JOIN content c1 ON c1.id = e1.content_id AND c1.user_id = :user_id
        JOIN content c2 ON c2.id = e2.content_id AND c2.user_id = :user_id
        WHERE cosine_distance(e1.embedding, e2.embedding) IS NOT NULL
          AND 1 - cosine_distance(e1.embedding, e2.embedding) {lower_op} :min_similarity
    """
    params: dict[str, Any] = {"user_id": user_id, "min_similarity": min_similarity}
    if max_similarity is not None:
        sql += " AND 1 - cosine_distance(e1.embedding, e2.embedding) <= :max_similarity"
        params["max_similarity"] = max_similarity
    sql += " ORDER BY similarity DESC LIMIT :limit"
    params["limit"] = limit

    with get_db_connection() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [(row["source"], row["target"], float(row["similarity"])) for row in rows]
