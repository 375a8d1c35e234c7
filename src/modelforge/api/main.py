from __future__ import annotations

import logging
from datetime import UTC, datetime

import requests
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..domain.errors import ModelForgeError, StoreFailure
from ..observability.metrics import metrics_middleware_factory
from .dependencies import get_settings
from .routers.files import router as files_router
from .routers.orchestrate import router as orchestrate_router
from .routers.sparring import router as sparring_router

load_dotenv()  # Load provider keys (OPENAI_API_KEY, XAI_API_KEY, ...) from .env if present

LOG = logging.getLogger("modelforge.api")

app = FastAPI(title="ModelForge API", version="0.1.0")

# Observability: request latency histogram
app.middleware("http")(metrics_middleware_factory())

# Routers
app.include_router(orchestrate_router)
app.include_router(sparring_router)
app.include_router(files_router)

# Also expose the same routers under /api
app.include_router(orchestrate_router, prefix="/api")
app.include_router(sparring_router, prefix="/api")
app.include_router(files_router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ModelForgeError)
async def pipeline_error_handler(request: Request, exc: ModelForgeError) -> JSONResponse:
    LOG.error("request_failed path=%s error=%s: %s", request.url.path, type(exc).__name__, exc)
    status_code = 500 if isinstance(exc, StoreFailure) else 502
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(requests.RequestException)
async def transport_error_handler(request: Request, exc: requests.RequestException) -> JSONResponse:
    LOG.error("request_failed path=%s error=transport: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": f"Completion provider unreachable: {exc}"})


def _health_payload() -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "components": {
            "api": "ok",
            "artifact_store": get_settings().artifact_store,
        },
    }


@app.get("/")
def root():
    return {"name": "ModelForge API", "version": "0.1.0"}


@app.get("/health")
def health():
    return _health_payload()


@app.get("/api/health")
def api_health():
    return _health_payload()


@app.get("/metrics")
def metrics() -> Response:
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
