"""FastAPI app: CORS, security headers, storage error mapping, routers."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from app.api.avatars import router as avatars_router
from app.api.schemas import ErrorResponse
from app.api.storage import router as storage_router
from app.core.config import get_settings
from app.core.deps import require_metrics_access
from app.core.logging_redaction import log_event
from app.core.metrics import get_metrics, record_rejection
from app.core.request_logging import RequestLoggingMiddleware
from app.services.storage import StorageError

settings = get_settings()
if settings.log_json:
    app_logger = logging.getLogger("app")
    for h in app_logger.handlers[:]:
        app_logger.removeHandler(h)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("%(message)s"))
    app_logger.addHandler(h)
    app_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

logger = logging.getLogger("app.errors")

app = FastAPI(title=settings.app_name)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "If-None-Match"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    # SVG uploads are served from our origin: never let them run script
    response.headers["Content-Security-Policy"] = "default-src 'self'; script-src 'none'; frame-ancestors 'none';"
    response.headers["Permissions-Policy"] = "accelerometer=(), camera=(), geolocation=(), microphone=(), payment=(), usb=()"
    return response


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    record_rejection(exc.code.value)
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    log_event(
        logger,
        level,
        "Storage request failed",
        code=exc.code.value,
        error_field=exc.field,
        error_value=exc.value,
        path=request.url.path,
    )
    # Internal failures never echo the offending value back to the client
    details = exc.details if exc.status_code < 500 else {"code": exc.code.value}
    body = ErrorResponse(code=exc.code.value, message=exc.message, details=details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


app.include_router(storage_router, prefix="/api")
app.include_router(avatars_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics", response_class=Response)
async def metrics(_: None = Depends(require_metrics_access)):
    """Prometheus metrics. Guarded by METRICS_SECRET + X-Metrics-Secret header when the secret is set."""
    body, content_type = get_metrics()
    return Response(content=body, media_type=content_type)
