"""FastAPI application setup for leavebot."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from leavebot.api.dependencies import (
    get_app_settings,
    get_database,
    get_embedding_model,
    get_ingest_pipeline,
    get_qa_service,
    get_query_service,
)
from leavebot.api.routes_admin import router as admin_router
from leavebot.api.routes_documents import router as documents_router
from leavebot.api.routes_ingest import router as ingest_router
from leavebot.api.routes_query import router as query_router
from leavebot.api.routes_slack import router as slack_router
from leavebot.core.logging import configure_logging
from leavebot.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()

app = FastAPI(
    title="leavebot",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents_router, prefix="", tags=["documents"])
app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(slack_router, prefix="/slack", tags=["slack"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedding_model()
    get_ingest_pipeline()
    get_query_service()
    get_qa_service()
