"""
Shared test fixtures for OpenEscala backend tests.
"""
import os
import sys
import tempfile

import pytest

# ── Python path setup ──────────────────────────────────────────────────────────
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

# Keep test runs out of the shared log file
os.environ.setdefault('ESCALA_LOG_FILE', os.path.join(tempfile.gettempdir(), 'escala-api-test.log'))


# ── Store fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def data_dir(tmp_path):
    """Function-scoped: empty data directory per test."""
    path = tmp_path / "data"
    path.mkdir()
    return str(path)


@pytest.fixture
def db(data_dir):
    """Empty store: no roster, no holidays, null rotation cursor."""
    from escalalib.database import EscalaDatabase
    return EscalaDatabase(data_dir)


@pytest.fixture
def seeded_db(db):
    """Store with the default six-person roster and holiday calendar."""
    db.seed_defaults()
    return db


@pytest.fixture
def planner(seeded_db):
    from escalalib.planner import SchedulePlanner
    return SchedulePlanner(seeded_db)


# ── HTTP fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def app():
    from api.main import app as _app
    return _app


@pytest.fixture
def client(data_dir, app):
    """
    Function-scoped TestClient on a fresh data directory.
    Entering the client runs the lifespan, which seeds the default roster.
    """
    from starlette.testclient import TestClient
    import api.main as main_module
    from api.dependencies import limiter

    original = main_module.DATA_DIR
    main_module.DATA_DIR = data_dir
    limiter.enabled = False
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    limiter.enabled = True
    main_module.DATA_DIR = original
