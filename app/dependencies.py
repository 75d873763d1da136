"""
Dependency Injection container.

Wires abstract ports → concrete adapters, and adapters → domain services.
To swap a provider, change the adapter instantiation here.
Nothing else in the codebase changes  (Open/Closed Principle).
"""

from functools import lru_cache

from fastapi import Depends
from supabase import Client, create_client

from app.adapters.supabase_adapter import SupabaseAdapter
from app.adapters.supabase_storage_adapter import SupabaseStorageAdapter
from app.config import settings
from app.ports.database_port import DatabasePort
from app.ports.storage_port import StoragePort
from app.services.interaction_service import InteractionService
from app.services.job_query_service import JobQueryService
from app.services.job_queue import JobQueueOrchestrator, JobQueueRegistry
from app.services.resume_service import ResumeService


# ── Singletons (cached) ──────────────────────────────────────


@lru_cache(maxsize=1)
def _get_supabase_client() -> Client:
    # Service role key bypasses RLS for server-side operations
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


@lru_cache(maxsize=1)
def _get_supabase_adapter() -> SupabaseAdapter:
    return SupabaseAdapter(client=_get_supabase_client())


@lru_cache(maxsize=1)
def _get_storage_adapter() -> SupabaseStorageAdapter:
    return SupabaseStorageAdapter(client=_get_supabase_client())


# ── FastAPI Dependencies (return abstract types) ──────────────


def get_db() -> DatabasePort:
    """Inject the database adapter."""
    return _get_supabase_adapter()


def get_storage() -> StoragePort:
    """Inject the file storage adapter."""
    return _get_storage_adapter()


# ── Domain Services ───────────────────────────────────────────


def get_interaction_service(db: DatabasePort = Depends(get_db)) -> InteractionService:
    """Injects the DB adapter (as both interaction and job port)."""
    return InteractionService(interactions=db, jobs=db)


def get_job_query_service(db: DatabasePort = Depends(get_db)) -> JobQueryService:
    return JobQueryService(jobs=db)


def get_resume_service(
    db: DatabasePort = Depends(get_db), storage: StoragePort = Depends(get_storage)
) -> ResumeService:
    return ResumeService(
        db=db,
        storage=storage,
        processing_base_url=settings.resume_api_base_url,
        bucket=settings.resume_bucket,
        max_bytes=settings.resume_max_bytes,
        signed_url_ttl=settings.resume_signed_url_ttl,
    )


def build_job_queue(profile, db: DatabasePort | None = None) -> JobQueueOrchestrator:
    """Factory used by the registry: one orchestrator per signed-in user."""
    db = db or get_db()
    return JobQueueOrchestrator(
        interactions=InteractionService(interactions=db, jobs=db),
        jobs=JobQueryService(jobs=db),
        profile=profile,
        queue_batch_size=settings.queue_batch_size,
        refresh_batch_size=settings.refresh_batch_size,
        history_limit=settings.history_limit,
    )


@lru_cache(maxsize=1)
def get_job_queue_registry() -> JobQueueRegistry:
    """Process-wide registry of per-user decks."""
    return JobQueueRegistry(
        factory=build_job_queue, max_users=settings.queue_registry_max_users
    )
