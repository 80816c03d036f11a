from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time, so they must be in place before app loads.
_DB_DIR = tempfile.mkdtemp(prefix='thailand-tracker-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ['JWT_SECRET'] = 'test-secret'
os.environ['ANTHROPIC_API_KEY'] = 'test-key'
os.environ.pop('REDIS_URL', None)
os.environ.pop('SUPABASE_JWT_SECRET', None)

import pytest
from fastapi.testclient import TestClient

import auth
import geo
import redis_client
from app import app
from database import engine
from models import db


@pytest.fixture(autouse=True)
def _fresh_state():
    db.metadata.drop_all(engine)
    db.metadata.create_all(engine)
    auth.reset_rate_limits()
    redis_client.reset()
    geo.clear_geojson()
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup(client):
    """Create an account and return its Authorization headers."""
    def _signup(email: str = 'traveller@example.com', password: str = 'secret123',
                full_name: str | None = 'Tom Traveller') -> dict[str, str]:
        body = {'email': email, 'password': password}
        if full_name is not None:
            body['fullName'] = full_name
        resp = client.post('/api/auth/signup', json=body)
        assert resp.status_code == 201, resp.text
        return {'Authorization': f"Bearer {resp.json()['accessToken']}"}

    return _signup


@pytest.fixture
def headers(signup):
    return signup()
