"""
Search API endpoints: keyword, semantic, question answering, suggestions
and topic clusters.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from mindweave.ai.clustering import cluster_content
from mindweave.ai.embeddings import semantic_search
from mindweave.ai.generation import LLMNotConfiguredError
from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.config import API_LIST_LIMIT_DEFAULT, CLUSTER_MAX_K, QUESTION_CONTEXT_MAX
from mindweave.observability.logging import get_logger
from mindweave.search import service
from mindweave.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/search", tags=["search"])
logger = get_logger(__name__)


class AskRequest(BaseModel):
    question: str
    context_limit: int = Field(5, alias="contextLimit", ge=1, le=QUESTION_CONTEXT_MAX)

    model_config = {"populate_by_name": True}


@router.get("")
async def keyword_search(
    user: AuthenticatedUser = Depends(get_current_user),
    q: str = Query(""),
    content_type: str | None = Query(None, alias="type"),
    tags: list[str] | None = Query(None),
    limit: int = Query(API_LIST_LIMIT_DEFAULT),
) -> dict[str, Any]:
    try:
        return service.keyword_search(user.id, q, content_type, tags, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Keyword search failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to search content") from None


@router.get("/semantic")
async def semantic(
    user: AuthenticatedUser = Depends(get_current_user),
    q: str = Query(""),
    limit: int = Query(10),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "semanticSearch", "serverActionAI")
    try:
        return semantic_search(user.id, q, limit)
    except Exception as e:
        logger.error("Semantic search failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to search content") from None


@router.post("/ask", dependencies=[Depends(rate_limited("ask", "ai"))])
async def ask(
    request: AskRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Answer a question from the user's knowledge base."""
    try:
        return service.ask_question(user.id, request.question, request.context_limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except LLMNotConfiguredError:
        raise HTTPException(status_code=503, detail="AI features are not configured") from None
    except Exception as e:
        logger.error("Question answering failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to answer question") from None


@router.get("/suggestions")
async def suggestions(
    user: AuthenticatedUser = Depends(get_current_user),
    q: str = Query("", max_length=200),
) -> dict[str, Any]:
    recent = service.get_recent_searches(user.id)
    return {"suggestions": service.get_search_suggestions(user.id, q, recent)}


@router.get("/recent")
async def recent_searches(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(5, ge=1, le=20),
) -> dict[str, Any]:
    return {"searches": service.get_recent_searches(user.id, limit)}


@router.get("/clusters")
async def clusters(
    user: AuthenticatedUser = Depends(get_current_user),
    num_clusters: int = Query(5, alias="numClusters", ge=1, le=CLUSTER_MAX_K),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "clusterContent", "serverActionAI")
    try:
        result = cluster_content(user.id, num_clusters)
    except Exception as e:
        logger.error("Clustering failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to cluster content") from None
    return {"success": True, "clusters": [cluster.to_api_dict() for cluster in result]}
