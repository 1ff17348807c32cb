"""
Hemisphere API Server
=====================

Read-only HTTP surface for hemisphere graphs.

Endpoints:
- GET /health                                         -> liveness
- GET /api/admin/workshops/{workshop_id}/hemisphere   -> graph for one run

The graph is recomputed on every request; nothing is cached or persisted.

Usage:
    uvicorn hemisphere.api.server:app --reload
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import HemisphereConfig
from ..contracts.base import RunType
from ..engine import HemisphereEngine
from ..observability import configure_logging
from ..storage import SqliteWorkshopStore
from .mapper import ErrorResponse, HemisphereResponse, map_report_to_dto

logger = logging.getLogger(__name__)


def create_app(engine: Optional[HemisphereEngine] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Pre-built engine (tests). When omitted, the engine is built
            at startup from the environment with the SQLite reference store.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            app.state.engine = engine
        else:
            config = HemisphereConfig.from_env()
            configure_logging(config.log_level)
            logger.info("Opening workshop store at %s", config.storage.db_path)
            store = SqliteWorkshopStore(config.storage.db_path)
            app.state.engine = HemisphereEngine(store, config)
            logger.info(
                "Narrative service %s (mode=%s)",
                "enabled" if config.narrative.is_active else "disabled",
                config.narrative.mode,
            )
        yield
        app.state.engine = None

    app = FastAPI(
        title="Hemisphere Insight Graph API",
        version="0.1.0",
        description="Cross-participant insight graph for discovery workshops",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check():
        """System status."""
        if getattr(app.state, "engine", None) is None:
            raise HTTPException(status_code=503, detail="Engine not initialized")
        return {"status": "online"}

    @app.get(
        "/api/admin/workshops/{workshop_id}/hemisphere",
        response_model=HemisphereResponse,
        responses={500: {"model": ErrorResponse}},
    )
    def get_hemisphere(workshop_id: str, run_type: Optional[str] = Query(None, alias="runType")):
        """
        Build the hemisphere graph for one workshop run.

        runType is BASELINE (default) or FOLLOWUP; anything else reads as BASELINE.
        """
        try:
            report = app.state.engine.build(workshop_id, RunType.parse(run_type))
            return map_report_to_dto(report)
        except Exception:
            logger.exception("Error building hemisphere graph for workshop %s", workshop_id)
            return JSONResponse(status_code=500, content=ErrorResponse().model_dump())

    return app


app = create_app()
