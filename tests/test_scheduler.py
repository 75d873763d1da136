"""Tests for the daily expiry sweep."""
from datetime import date
from unittest.mock import AsyncMock

import pytest

from app import scheduler
from app.domain.exceptions import QueryError
from tests.fakes import make_job


@pytest.mark.asyncio
async def test_trigger_expiry_sweep(store, monkeypatch):
    monkeypatch.setattr(scheduler, "get_db", lambda: store)
    store.add_jobs(make_job("stale", date_validthru="2024-05-01"))
    store.interactions.append({
        "id": "i1", "user_id": "u", "job_id": "stale", "interaction_type": "queued",
        "created_at": None, "updated_at": None,
    })

    expired = await scheduler.trigger_expiry_sweep(today=date(2024, 6, 1))

    assert expired == 1
    assert store.interactions[0]["interaction_type"] == "expired"


@pytest.mark.asyncio
async def test_run_expiry_sweep_skips_without_lock(monkeypatch):
    sweep = AsyncMock()
    monkeypatch.setattr(scheduler, "_acquire_cron_lock", AsyncMock(return_value=False))
    monkeypatch.setattr(scheduler, "trigger_expiry_sweep", sweep)

    await scheduler.run_expiry_sweep()

    sweep.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_expiry_sweep_releases_lock_on_failure(monkeypatch):
    release = AsyncMock()
    monkeypatch.setattr(scheduler, "_acquire_cron_lock", AsyncMock(return_value=True))
    monkeypatch.setattr(scheduler, "_release_cron_lock", release)
    monkeypatch.setattr(
        scheduler, "trigger_expiry_sweep", AsyncMock(side_effect=QueryError("down"))
    )

    await scheduler.run_expiry_sweep()

    release.assert_awaited_once_with(scheduler.SWEEP_JOB_ID)
