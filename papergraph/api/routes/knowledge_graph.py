"""Knowledge graph API — overview, search, paths and entity listing.

Endpoints:
    GET  /api/knowledge-graph                       Overview of the best-connected entities
    POST /api/knowledge-graph/search                Search seeded into a bounded neighborhood
    POST /api/knowledge-graph/expand                Neighborhood of explicit seed ids
    GET  /api/knowledge-graph/path/{from_id}/{to_id}  Shortest path between two entities
    GET  /api/knowledge-graph/entities              Paged entity listing

Handlers are plain ``def`` functions: the engine does blocking store reads
followed by CPU-bound traversal, so FastAPI runs each request on its
worker threadpool. Engine errors are translated to HTTP statuses by the
exception handlers registered in ``papergraph.api.app``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from papergraph.graph.engine import GraphQueryEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/knowledge-graph", tags=["knowledge-graph"])


def get_engine(request: Request) -> GraphQueryEngine:
    return request.app.state.engine


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class SearchRequest(BaseModel):
    """Free-text search over entity names and aliases."""
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field("", description="Substring matched against names and aliases")
    entity_types: list[str] = Field(default_factory=list, alias="entityTypes")
    max_distance: Optional[int] = Field(None, alias="maxDistance")


class ExpandRequest(BaseModel):
    """Neighborhood of explicit seed entity ids."""
    model_config = ConfigDict(populate_by_name=True)

    seeds: list[str] = Field(default_factory=list)
    max_distance: Optional[int] = Field(None, alias="maxDistance")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("")
def get_graph(
    limit: Optional[int] = Query(None, description="Maximum number of nodes to return"),
    engine: GraphQueryEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.get_graph(limit)


@router.post("/search")
def search_graph(
    req: SearchRequest,
    engine: GraphQueryEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.search_graph(req.query, req.entity_types, req.max_distance)


@router.post("/expand")
def expand(
    req: ExpandRequest,
    engine: GraphQueryEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.expand(req.seeds, req.max_distance)


@router.get("/path/{from_id}/{to_id}")
def find_path(
    from_id: str,
    to_id: str,
    max_hops: Optional[int] = Query(None, alias="maxHops"),
    engine: GraphQueryEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.find_shortest_path(from_id, to_id, max_hops)


@router.get("/entities")
def list_entities(
    type: Optional[str] = Query(None, description="Entity type filter"),
    search: Optional[str] = Query(None, description="Name/alias substring filter"),
    page: int = Query(1),
    limit: int = Query(20),
    engine: GraphQueryEngine = Depends(get_engine),
) -> dict[str, Any]:
    return engine.list_entities(type, search, page, limit)
