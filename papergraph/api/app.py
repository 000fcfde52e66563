"""papergraph — FastAPI application factory.

Usage:
    uvicorn papergraph.api.app:create_app --factory --reload --port 8000

Or for production:
    PAPERGRAPH_SNAPSHOT_PATH=snapshot.json \\
        uvicorn papergraph.api.app:create_app --factory --host 0.0.0.0 --workers 4
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from papergraph import __version__
from papergraph.config.settings import settings
from papergraph.graph.engine import GraphQueryEngine
from papergraph.graph.errors import EntityNotFound, StoreUnavailable, ValidationError
from papergraph.graph.store import InMemoryGraphStore

logger = logging.getLogger("papergraph.api")


def _default_engine() -> GraphQueryEngine:
    if settings.SNAPSHOT_PATH:
        store = InMemoryGraphStore.from_json_file(settings.SNAPSHOT_PATH)
    else:
        logger.warning("PAPERGRAPH_SNAPSHOT_PATH not set; serving an empty graph")
        store = InMemoryGraphStore()
    return GraphQueryEngine.from_store(store)


def create_app(
    engine: GraphQueryEngine | None = None,
    include_docs: bool = True,
) -> FastAPI:
    """Build and return the FastAPI application.

    ``engine`` is the query engine to serve; by default one is built over
    the snapshot named by ``PAPERGRAPH_SNAPSHOT_PATH``.
    """
    app = FastAPI(
        title="papergraph",
        description="Scientific paper knowledge graph explorer",
        version=__version__,
        docs_url="/docs" if include_docs else None,
        redoc_url="/redoc" if include_docs else None,
    )
    app.state.engine = engine if engine is not None else _default_engine()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc), "field": exc.field})

    @app.exception_handler(EntityNotFound)
    async def _not_found(request: Request, exc: EntityNotFound) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"error": str(exc), "entityIds": exc.entity_ids},
        )

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.error("Store failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"error": str(exc)})

    from papergraph.api.routes.health import router as health_router
    from papergraph.api.routes.knowledge_graph import router as kg_router
    app.include_router(health_router)
    app.include_router(kg_router)

    logger.info("papergraph v%s app created", __version__)
    return app
