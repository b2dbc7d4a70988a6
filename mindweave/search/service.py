"""Search service - keyword search, Q&A over the knowledge base, suggestions.

Semantic search itself lives in mindweave.ai.embeddings; this module adds the
user-facing validation and the search history that feeds suggestions.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from mindweave.ai.embeddings import search_similar_content
from mindweave.ai.generation import ContextItem, answer_question, generate_search_suggestions
from mindweave.config import (
    API_LIST_LIMIT_MAX,
    QUESTION_CONTEXT_MAX,
    QUESTION_MAX,
    SEARCH_QUERY_MAX,
    SUGGESTIONS_MAX,
)
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter
from mindweave.search import history
from mindweave.utils.validators import ValidationError, validate_content_type

logger = get_logger(__name__)


@dataclass
class SearchSuggestion:
    text: str
    type: str  # recent | popular | related | ai


def keyword_search(
    user_id: str,
    query: str,
    content_type: str | None = None,
    tags: list[str] | None = None,
    limit: int = 20,
) -> dict[str, Any]:
    """
    Case-insensitive title/body search; records the query.

    Raises:
        ValidationError: On an empty or too-long query, bad limit or type
    """
    query = (query or "").strip()
    if not query:
        raise ValidationError("Search query is required")
    if len(query) > SEARCH_QUERY_MAX:
        raise ValidationError(f"Search query must be at most {SEARCH_QUERY_MAX} characters")
    if not 1 <= limit <= API_LIST_LIMIT_MAX:
        raise ValidationError(f"Limit must be between 1 and {API_LIST_LIMIT_MAX}")
    if content_type:
        validate_content_type(content_type)

    items = ContentRepository.search_keyword(user_id, query, content_type, tags, limit)

    try:
        history.record_search(user_id, query)
    except Exception as e:
        # best-effort
        logger.warning("Failed to record search history: %s", e)

    counter("search.keyword")
    return {
        "success": True,
        "query": query,
        "results": [item.to_api_dict() for item in items],
        "count": len(items),
    }


def ask_question(user_id: str, question: str, context_limit: int = 5) -> dict[str, Any]:
    """
    Answer a question from the user's most relevant items.

    Raises:
        ValidationError: On an invalid question or context_limit
        LLMNotConfiguredError: If the LLM is not configured
    """
    question = (question or "").strip()
    if not question:
        raise ValidationError("Question is required")
    if len(question) > QUESTION_MAX:
        raise ValidationError(f"Question must be at most {QUESTION_MAX} characters")
    if not 1 <= context_limit <= QUESTION_CONTEXT_MAX:
        raise ValidationError(f"Context limit must be between 1 and {QUESTION_CONTEXT_MAX}")

    matches = search_similar_content(question, user_id, context_limit)
    context = [
        ContextItem(
            title=m["title"],
            body=m.get("body"),
            tags=[*m.get("tags", []), *m.get("autoTags", [])],
            url=m.get("url"),
            type=m["type"],
        )
        for m in matches
    ]
    answer = answer_question(question, context)
    counter("search.questions")

    return {
        "answer": answer,
        "sources": [
            {"id": m["id"], "title": m["title"], "similarity": m["similarity"]} for m in matches
        ],
    }


def _popular_tags(user_id: str, limit: int) -> list[str]:
    return [tag for tag, _ in ContentRepository.tag_counts(user_id, limit) if tag]


def get_search_suggestions(
    user_id: str, query: str, recent_searches: list[str] | None = None
) -> list[dict[str, str]]:
    """
    Autocomplete suggestions, at most six.

    Short queries get popular tags then recent searches. Longer ones get
    matching tags, keywords from matching titles, AI ideas and matching recent
    searches, in that order. Returns [] on error.
    """
    recent = recent_searches or []
    suggestions: list[SearchSuggestion] = []

    def has(text: str, case_insensitive: bool = False) -> bool:
        if case_insensitive:
            return any(s.text.lower() == text.lower() for s in suggestions)
        return any(s.text == text for s in suggestions)

    try:
        if not query or len(query) < 2:
            suggestions += [SearchSuggestion(tag, "popular") for tag in _popular_tags(user_id, 4)]
            suggestions += [SearchSuggestion(s, "recent") for s in recent[:3]]
            return [asdict(s) for s in suggestions[:SUGGESTIONS_MAX]]

        lowered = query.lower()
        popular = _popular_tags(user_id, 10)

        for tag in [t for t in popular if lowered in t.lower()][:2]:
            suggestions.append(SearchSuggestion(tag, "related"))

        for title in ContentRepository.search_titles(user_id, query, limit=3):
            words = [w for w in title.split(" ") if len(w) > 3]
            if words:
                keyword = " ".join(words[:3]).lower()
                if not has(keyword):
                    suggestions.append(SearchSuggestion(keyword, "related"))

        if len(query) >= 3 and len(popular) >= 3:
            for text in generate_search_suggestions(query, popular):
                if not has(text, case_insensitive=True):
                    suggestions.append(SearchSuggestion(text, "ai"))

        for search in recent:
            if lowered in search.lower() and not has(search):
                suggestions.append(SearchSuggestion(search, "recent"))

        return [asdict(s) for s in suggestions[:SUGGESTIONS_MAX]]
    except Exception as e:
        logger.error("Error getting search suggestions: %s", e)
        return []


def get_recent_searches(user_id: str, limit: int = 5) -> list[str]:
    return history.get_recent_searches(user_id, limit)
