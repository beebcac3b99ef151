"""FastAPI application serving status records on demand.

Endpoints:
- POST /status - Build the record for one project descriptor
- GET /health - Health check for load balancers and monitoring
- Automatic OpenAPI/Swagger documentation at /docs

To run locally:
    uvicorn project_status.main:app --reload --port 8000
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from project_status.cli import make_clients
from project_status.config import load_settings
from project_status.engine import build_project_record
from project_status.errors import SourceUnavailable
from project_status.logging_config import get_logger, setup_logging
from project_status.schemas import HistoryEntry, NormalizedRecord, ProjectDescriptor

logger = get_logger(__name__)


class StatusRequest(BaseModel):
    """Body of POST /status."""

    project: ProjectDescriptor
    history: list[HistoryEntry] | None = Field(
        None, description="Prior snapshots of this project, newest first"
    )


# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the remote clients once at startup."""
    settings = load_settings()
    setup_logging(environment=settings.environment, log_level=settings.log_level)
    app.state.github, app.state.registry = make_clients(settings)
    yield


app = FastAPI(
    title="Project Status",
    description="Repository, CI and registry status for maintained projects",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable) -> JSONResponse:
    """A remote lookup failed: the record cannot be built (502 Bad Gateway)."""
    logger.warning("status_request_failed", project=exc.project_id, source=exc.source)
    return JSONResponse(
        status_code=502,
        content={
            "error": "source_unavailable",
            "source": exc.source,
            "project": exc.project_id,
            "detail": str(exc),
        },
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.post("/status")
async def project_status(body: StatusRequest, request: Request) -> JSONResponse:
    """Build the status record for one project.

    Returns the record with camelCase field names, as the dashboard
    consumes it.
    """
    record: NormalizedRecord = await build_project_record(
        body.project,
        request.app.state.github,
        request.app.state.registry,
        body.history,
    )
    return JSONResponse(content=record.model_dump(mode="json", by_alias=True))
