import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from evalboard.db import check_health

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

VERSION = "1.0.0"


def _meta(request_id=None):
    return {
        "request_id": request_id or ("req_" + uuid.uuid4().hex[:12]),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def envelope(data, request_id=None):
    return {"data": data, "meta": _meta(request_id)}


def error_envelope(code, message, details=None, request_id=None):
    err = {"code": code, "message": message}
    if details is not None:
        err["details"] = details
    return {"error": err, "meta": _meta(request_id)}


def error_response(exc):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.code, exc.message, exc.details),
    )


def internal_error():
    return JSONResponse(
        status_code=500,
        content=error_envelope("INTERNAL", "Internal server error"),
    )


@router.get("/health")
def health_check():
    sources = check_health()
    primary_ok = bool(sources) and next(iter(sources.values()))
    if not primary_ok:
        return JSONResponse(
            status_code=503,
            content={"status": "down", "sources": sources, "version": VERSION},
        )
    status = "ok" if all(sources.values()) else "degraded"
    return {"status": status, "sources": sources, "version": VERSION}
