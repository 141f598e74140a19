import logging
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from hylian.api.contracts import router as contracts_router
from hylian.api.documents import router as documents_router
from hylian.api.fields import router as fields_router
from hylian.api.signatures import router as signatures_router
from hylian.config import settings
from hylian.errors import register_error_handlers
from hylian.logging import configure_logging
from hylian.observability import ObservabilityMiddleware
from hylian.services.object_storage import ensure_storage_bucket

app = FastAPI(title="hylian signing API")
logger = logging.getLogger(__name__)
configure_logging()
app.add_middleware(ObservabilityMiddleware)
if settings.cors_origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(documents_router)
_include_api_router(fields_router)
_include_api_router(contracts_router)
# Signing is authorized by the signer id carried in the invitation link.
_include_api_router(signatures_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def _start_jobs():
    try:
        ensure_storage_bucket()
    except Exception:
        logger.exception("Failed to ensure storage bucket during startup")
