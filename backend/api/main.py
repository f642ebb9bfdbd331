"""FastAPI application for OpenEscala."""
import os
import sys
import time as _startup_time_module
from contextlib import asynccontextmanager
from dotenv import load_dotenv

_APP_START_TIME = _startup_time_module.time()

# Load .env file if present
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

# Add parent dir to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from slowapi import _rate_limit_exceeded_handler  # noqa: E402
from slowapi.errors import RateLimitExceeded  # noqa: E402

from .dependencies import (  # noqa: E402
    get_db,
    _logger,
    limiter,
    SEED_DEFAULTS,
)

# ── Config ──────────────────────────────────────────────────────
DATA_DIR = os.environ.get(
    'ESCALA_DATA_DIR',
    os.path.join(os.path.dirname(__file__), '..', '..', 'data')
)
DATA_DIR = os.path.normpath(DATA_DIR)

# CORS origins from env
_raw_origins = os.environ.get('ALLOWED_ORIGINS', '')
ALLOWED_ORIGINS = (
    [o.strip() for o in _raw_origins.split(',') if o.strip()]
    or ['http://localhost:5173', 'http://localhost:5000']
)

_OPENAPI_TAGS = [
    {"name": "Health", "description": "System health and version info"},
    {"name": "Employees", "description": "Roster management (soft delete)"},
    {"name": "Holidays", "description": "Recurring national and Recife holidays"},
    {"name": "Schedules", "description": "Weekly and monthly schedule generation and edits"},
    {"name": "Rotation", "description": "Weekend on-call rotation cursor"},
    {"name": "Events", "description": "Server-Sent Events for live updates"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if SEED_DEFAULTS:
        try:
            if get_db().seed_defaults():
                _logger.info("Startup: default roster and holidays written to %s", DATA_DIR)
        except OSError as _exc:
            _logger.warning("Startup seeding failed: %s", _exc)
    yield
    _logger.info("Escala API shutting down")


app = FastAPI(
    lifespan=lifespan,
    title="OpenEscala API",
    description=(
        "REST API for the employee shift schedule.\n\n"
        "Schedules are generated lazily per week or month: the first request for a "
        "period generates and stores it and advances the weekend on-call rotation; "
        "later requests return the stored schedule."
    ),
    version="1.2.0",
    openapi_tags=_OPENAPI_TAGS,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten Pydantic validation errors into one readable detail string."""
    _TYPE_MSGS = {
        "missing": "Field required",
        "int_parsing": "Must be an integer",
        "bool_parsing": "Must be true or false",
        "string_too_short": "Value too short",
        "literal_error": "Value not allowed",
    }
    errors = []
    for e in exc.errors():
        field = ".".join(str(loc) for loc in e.get("loc", []) if loc not in ("body", "query", "path"))
        etype = e.get("type", "")
        msg = _TYPE_MSGS.get(etype, e.get("msg", "Invalid value"))
        if field:
            errors.append(f"{field}: {msg}")
        else:
            errors.append(msg)
    detail = "; ".join(errors) if errors else "Invalid input"
    return JSONResponse(status_code=422, content={"detail": detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions, log with details, return sanitized 500."""
    import traceback
    _logger.error(
        "Unhandled exception: %s %s | %s | %s",
        request.method, request.url.path,
        type(exc).__name__,
        traceback.format_exc().splitlines()[-1],
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. Please try again."},
    )


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request as structured JSON with timing info and request-ID."""
    import time as _t
    import uuid as _uuid
    import json as _json_mod
    # Short unique request ID for correlating log entries
    req_id = _uuid.uuid4().hex[:8]
    start = _t.time()
    response = await call_next(request)
    duration_ms = round((_t.time() - start) * 1000)
    entry = {
        "req_id": req_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    _logger.info(_json_mod.dumps(entry, ensure_ascii=False))
    response.headers["X-Request-ID"] = req_id
    return response


# ── Include routers ─────────────────────────────────────────────
from .routers import employees, holidays, schedules, rotation, events  # noqa: E402

app.include_router(employees.router)
app.include_router(holidays.router)
app.include_router(schedules.router)
app.include_router(rotation.router)
app.include_router(events.router)


# ── Routes ──────────────────────────────────────────────────────

_API_VERSION = "1.2.0"


@app.get(
    "/api/health",
    tags=["Health"],
    summary="Health check",
    description="Returns service status, API version, uptime in seconds and store state.",
)
def health():
    import time as _t
    store_status = "ok"
    try:
        get_db().get_stats()
    except Exception as _exc:
        _logger.warning("Health check: store unreadable: %s", _exc)
        store_status = "error"

    return {
        "status": "ok",
        "version": _API_VERSION,
        "uptime_seconds": round(_t.time() - _APP_START_TIME, 1),
        "store": {"status": store_status},
    }


@app.get("/api/version", tags=["Health"], summary="API version")
def version():
    return {"version": _API_VERSION, "service": "OpenEscala API"}


@app.get("/api", tags=["Health"], summary="API root", description="Returns basic service info.")
def root():
    return {"service": "OpenEscala API", "version": _API_VERSION, "backend": "json"}


@app.get("/api/stats", tags=["Health"], summary="Store statistics")
def get_stats():
    return get_db().get_stats()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
