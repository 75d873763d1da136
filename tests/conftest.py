"""
PyTest configuration file containing test fixtures.
"""
import os

# Settings() is built at import time; give it values before any app import
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest

from app.domain.models import AppliedCountry, UserProfile
from app.services.interaction_service import InteractionService
from app.services.job_query_service import JobQueryService
from app.services.job_queue import JobQueueOrchestrator
from tests.fakes import BASE_DAY, FakeStorage, FakeStore


@pytest.fixture
def today():
    """Fixed 'today' used by every service under test."""
    return BASE_DAY


@pytest.fixture
def store():
    """Empty in-memory database."""
    return FakeStore()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def profile():
    """A signed-in user targeting Germany, with no title requests."""
    return UserProfile(
        id="user-1",
        email="ada@example.com",
        first_name="Ada",
        location="Munich",
        applying_countries=[AppliedCountry(country_name="Germany", country_code="DE")],
    )


@pytest.fixture
def interaction_service(store, today):
    return InteractionService(interactions=store, jobs=store, today=lambda: today)


@pytest.fixture
def job_query_service(store, today):
    return JobQueryService(jobs=store, today=lambda: today)


@pytest.fixture
def orchestrator(interaction_service, job_query_service, profile):
    return JobQueueOrchestrator(
        interactions=interaction_service,
        jobs=job_query_service,
        profile=profile,
    )
