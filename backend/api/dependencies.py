"""
Shared dependencies for the OpenEscala API.
Logging, environment configuration, rate limiting and store access used by
main.py and every router.
"""
import os
import logging
import logging.handlers
import traceback

from fastapi import HTTPException
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from escalalib.database import EscalaDatabase
from escalalib.exceptions import DuplicateError, NotFoundError, PeriodOverlapError, ScheduleExistsError
from escalalib.generator import DEFAULT_MIN_POOL_SIZE
from escalalib.planner import SchedulePlanner

# ── Structured JSON Logging setup ───────────────────────────────
import json as _json
from datetime import datetime as _dt, timezone as _tz

class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _dt.fromtimestamp(record.created, tz=_tz.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return _json.dumps(entry, ensure_ascii=False)

_log_file = os.environ.get('ESCALA_LOG_FILE', '/tmp/escala-api.log')
_handler = logging.handlers.RotatingFileHandler(
    _log_file, maxBytes=10 * 1024 * 1024, backupCount=3
)
_handler.setFormatter(_JsonFormatter())

# Library loggers (escalalib.*) share the API handlers
_log_level_str = os.environ.get('ESCALA_LOG_LEVEL', 'INFO').upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)
_stderr_handler = logging.StreamHandler()
_stderr_handler.setFormatter(_JsonFormatter())
for _name in ('escala.api', 'escalalib'):
    _lg = logging.getLogger(_name)
    _lg.setLevel(_log_level)
    _lg.addHandler(_handler)
    _lg.addHandler(_stderr_handler)

_logger = logging.getLogger('escala.api')

ESCALA_LOG_FILE = _log_file

# ── Engine configuration ─────────────────────────────────────────
MIN_ROTATION_POOL = int(os.environ.get('ESCALA_MIN_ROTATION_POOL', str(DEFAULT_MIN_POOL_SIZE)))
SEED_DEFAULTS = os.environ.get('ESCALA_SEED_DEFAULTS', 'true').lower() in ('1', 'true', 'yes')
GENERATE_RATE = os.environ.get('ESCALA_GENERATE_RATE', '30/minute')

# ── Rate Limiter ─────────────────────────────────────────────────
limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])


def get_db() -> EscalaDatabase:
    """Get a store for the current DATA_DIR from the main module."""
    import api.main as _main
    return EscalaDatabase(_main.DATA_DIR)


def get_planner() -> SchedulePlanner:
    return SchedulePlanner(get_db(), min_pool_size=MIN_ROTATION_POOL)


def _validation_detail(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        field = ".".join(str(loc) for loc in err.get("loc", []))
        msg = err.get("msg", "Invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or "Invalid data"


def _sanitize_500(e: Exception, context: str = '') -> HTTPException:
    """Log full exception, return sanitized 500."""
    _logger.error(
        "500 error context=%s type=%s msg=%s trace=%s",
        context, type(e).__name__, str(e),
        traceback.format_exc().splitlines()[-1],
    )
    return HTTPException(
        status_code=500,
        detail="Internal server error. Please try again.",
    )


def _to_http(e: Exception, context: str = '') -> HTTPException:
    """Map an escalalib error onto an HTTPException."""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (DuplicateError, ScheduleExistsError, PeriodOverlapError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=_validation_detail(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    return _sanitize_500(e, context)
