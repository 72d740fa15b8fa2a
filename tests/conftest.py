# tests/conftest.py

"""
Pytest Fixtures - Shared test configuration for scoring, placement and API tests

Tests run against the in-memory backend with Redis disabled. Every test
that uses the API gets a fresh repository and a fresh rate-limit store.
"""

import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["ADMIN_SECRET"] = "test-secret"
os.environ["CACHE_ENABLED"] = "false"
os.environ["APP_ENV"] = "development"
os.environ["SCORING_SCHEME"] = "extended"

from typing import Any, Dict, Set

import pytest
from fastapi.testclient import TestClient

from djrank.core.dependencies import get_performer_gateway
from djrank.core.exceptions import GatewayError
from djrank.core.security import get_admin_authenticator
from djrank.main import app
from djrank.repositories.memory_repository import InMemoryPerformerRepository
from djrank.services.gateway import LocalGateway


ADMIN_TOKEN = "test-secret"


# =============================================================================
# GATEWAY DOUBLES
# =============================================================================

class FlakyGateway(LocalGateway):
    """
    LocalGateway that fails the operations listed in fail_on and counts calls.
    """

    def __init__(self, repository: InMemoryPerformerRepository):
        super().__init__(repository)
        self.fail_on: Set[str] = set()
        self.calls: Dict[str, int] = {}

    def _track(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if operation in self.fail_on:
            raise GatewayError(operation, "simulated outage")

    async def list(self):
        self._track("list")
        return await super().list()

    async def get(self, performer_id: str):
        self._track("get")
        return await super().get(performer_id)

    async def create(self, partial: Dict[str, Any]):
        self._track("create")
        return await super().create(partial)

    async def update(self, performer_id: str, partial: Dict[str, Any]):
        self._track("update")
        return await super().update(performer_id, partial)

    async def delete(self, performer_id: str):
        self._track("delete")
        return await super().delete(performer_id)


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def repository():
    """Empty in-memory performer repository."""
    return InMemoryPerformerRepository()


@pytest.fixture
def gateway(repository):
    """Flaky gateway over the in-memory repository (healthy by default)."""
    return FlakyGateway(repository)


@pytest.fixture
def seeded_repository(repository):
    """Repository with one queued performer and one S-tier performer."""
    repository.create({"id": "1001", "name": "Queued DJ", "criteria": {"flow": 1}})
    repository.create({
        "id": "1002",
        "name": "Headliner",
        "tier": "S",
        "criteria": {"flow": 3, "vibes": 3, "visuals": 3, "creativity": 3},
        "bonus_crowd_control": True,
        "bonus_signature_moment": True,
        "bonus_bold_risks": True,
    })
    return repository


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(gateway):
    """TestClient wired to the per-test gateway."""
    get_admin_authenticator.cache_clear()
    app.dependency_overrides[get_performer_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    get_admin_authenticator.cache_clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}


# =============================================================================
# PERFORMER PAYLOAD FIXTURES
# =============================================================================

@pytest.fixture
def valid_performer_data():
    """Valid performer payload with a full rubric."""
    return {
        "name": "Peggy Gou",
        "bio": "Berlin-based DJ and producer",
        "soundcloud_url": "https://soundcloud.com/peggygou",
        "criteria": {"flow": 3, "vibes": 3, "visuals": 2, "creativity": 3},
        "bonus_crowd_control": True,
        "event_venue": "Panorama Bar",
        "event_city": "Berlin",
        "event_date": "2024-12-31",
        "event_type": "club",
        "event_slot": "closing",
        "set_duration": "3h",
    }


@pytest.fixture
def valid_performer_minimal():
    """Minimal valid performer payload (only the name)."""
    return {"name": "Newcomer"}


@pytest.fixture
def invalid_performer_empty_name():
    return {"name": ""}


@pytest.fixture
def spotify_search_result():
    """Artist hit as returned by an external search integration."""
    return {
        "name": "Honey Dijon",
        "image": "https://i.scdn.co/image/honey",
        "bio": "",
        "url": "https://open.spotify.com/artist/honey",
        "source": "spotify",
    }

