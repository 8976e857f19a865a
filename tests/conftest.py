"""
Pytest fixtures for PCM backend tests.
"""
import os
import sys
import tempfile
from datetime import timedelta

import pytest

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from factories import FIXED_NOW


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def db_path():
    """Temporary SQLite file, removed after the test."""
    db_fd, path = tempfile.mkstemp(suffix='.db')
    yield path
    os.close(db_fd)
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def store(db_path):
    from pcm.store import RecordStore
    record_store = RecordStore(db_path)
    record_store.initialize()
    return record_store


@pytest.fixture
def identity(store):
    from pcm.identity import IdentityProvider
    return IdentityProvider(store.db_path, 'test-secret-key', token_expiry_hours=1)


@pytest.fixture
def app(store, identity):
    """Create and configure a test application instance."""
    from pcm import create_app

    flask_app = create_app('testing', store=store, identity=identity, clock=lambda: FIXED_NOW)
    flask_app.config.update({
        'TESTING': True,
    })
    yield flask_app


@pytest.fixture
def client(app):
    """Create a test client for the application."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def sample_registration():
    return {
        'name': 'Acme Industrial',
        'manager_email': 'manager@acme.example',
        'password': 'secret123',
        'plan': 'professional',
    }


@pytest.fixture
def registered_company(client, sample_registration):
    response = client.post('/api/auth/register', json=sample_registration)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def auth_headers(client, registered_company, sample_registration):
    """Authorization header for the registered company's manager."""
    response = client.post('/api/auth/login', json={
        'email': sample_registration['manager_email'],
        'password': sample_registration['password'],
    })
    assert response.status_code == 200
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def sample_equipment_data():
    return {
        'name': 'Compressor A1',
        'location': 'Plant 1',
        'maintenance_type': 'preventive',
        'installed_at': (FIXED_NOW - timedelta(days=200)).isoformat(),
    }

