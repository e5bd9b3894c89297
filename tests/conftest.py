from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from lead_engine.api import endpoints
from lead_engine.models.schemas import Lead
from lead_engine.store import InMemoryStore

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_lead():
    """Factory for leads with sensible defaults; ``age_days`` sets created_at"""

    def _make(lead_id="lead-1", age_days=0, **fields):
        data = {
            "id": lead_id,
            "email": f"{lead_id}@example.com",
            "first_name": "Test",
            "last_name": "Lead",
            "contact_attempts": 1,
            "created_at": NOW - timedelta(days=age_days),
        }
        data.update(fields)
        return Lead(**data)

    return _make


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    endpoints.app.dependency_overrides[endpoints.get_store] = lambda: store
    with TestClient(endpoints.app) as test_client:
        yield test_client
    endpoints.app.dependency_overrides.clear()
