"""
Knowledge graph endpoints.

The content graph is computed live; public graphs are frozen snapshots
readable by anyone holding the graph id.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.graph import service
from mindweave.observability.logging import get_logger

router = APIRouter(prefix="/api/graph", tags=["graph"])
logger = get_logger(__name__)


class PublicGraphRequest(BaseModel):
    title: str
    description: str | None = None
    settings: dict[str, Any] | None = None


@router.get("")
async def content_graph(
    user: AuthenticatedUser = Depends(get_current_user),
    min_similarity: float = Query(0.5, alias="minSimilarity", ge=0.0, le=1.0),
    limit: int = Query(50),
) -> dict[str, Any]:
    try:
        return service.get_content_graph(user.id, min_similarity, limit)
    except Exception as e:
        logger.error("Failed to build content graph: %s", e)
        raise HTTPException(status_code=500, detail="Failed to build graph") from None


@router.get("/public")
async def list_public_graphs(
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return service.list_public_graphs(user.id)


@router.post("/public")
async def create_public_graph(
    request: PublicGraphRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "generatePublicGraph", "serverActionAI")
    try:
        return service.generate_public_graph(
            user.id, request.title, request.description, request.settings
        )
    except Exception as e:
        logger.error("Failed to generate public graph: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate graph") from None


@router.get("/public/{graph_id}", dependencies=[Depends(rate_limited("public-graph"))])
async def get_public_graph(graph_id: str) -> dict[str, Any]:
    result = service.get_public_graph(graph_id)
    if not result["success"]:
        raise HTTPException(status_code=404, detail=result["message"])
    return result


@router.delete("/public/{graph_id}")
async def delete_public_graph(
    graph_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "deletePublicGraph")
    return service.delete_public_graph(user.id, graph_id)
