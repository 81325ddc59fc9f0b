# tests/test_lock_service.py
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.enums import DenialReason
from event_judging.errors import AccessDenied, LockUpdateNotApplied, MutationFailure, NotFound
from event_judging.services.audit_log import audit_logger
from event_judging.services.lock import LockService

service = LockService()


async def test_admin_locks_event(database, seed):
    outcome = await service.lock(seed.event_admin, seed.event.id)

    assert outcome.changed and outcome.verified
    assert outcome.event.is_locked
    assert outcome.event.locked_by == "dance"
    assert outcome.event.locked_at is not None

    stored = await database.get_event(seed.event.id)
    assert stored.is_locked and stored.locked_by == "dance"


async def test_unlock_clears_lock_metadata(database, seed):
    await service.lock(seed.god, seed.event.id)
    outcome = await service.unlock(seed.god, seed.event.id)

    assert outcome.changed and outcome.verified
    stored = await database.get_event(seed.event.id)
    assert not stored.is_locked
    assert stored.locked_by is None and stored.locked_at is None


async def test_toggle_flips_state(database, seed):
    assert (await service.toggle(seed.god, seed.event.id)).event.is_locked
    assert not (await service.toggle(seed.god, seed.event.id)).event.is_locked


async def test_requesting_current_state_writes_nothing(database, seed, monkeypatch):
    update = AsyncMock(return_value=1)
    monkeypatch.setattr(database, "update_event_lock", update)

    outcome = await service.unlock(seed.god, seed.event.id)

    assert outcome.changed is False
    update.assert_not_awaited()


@pytest.mark.parametrize("who", ["judge", "outsider"])
async def test_only_eligible_admins_toggle(database, seed, who):
    with pytest.raises(AccessDenied) as exc:
        await service.lock(getattr(seed, who), seed.event.id)
    assert exc.value.reason == DenialReason.UNAUTHORIZED
    assert not (await database.get_event(seed.event.id)).is_locked


async def test_admin_may_unlock_a_locked_event(database, seed):
    await service.lock(seed.god, seed.event.id)
    outcome = await service.unlock(seed.event_admin, seed.event.id)
    assert outcome.changed


async def test_zero_rows_is_reported(database, seed, monkeypatch):
    monkeypatch.setattr(database, "update_event_lock", AsyncMock(return_value=0))
    with pytest.raises(LockUpdateNotApplied) as exc:
        await service.lock(seed.god, seed.event.id)
    assert exc.value.event_id == seed.event.id
    assert isinstance(exc.value, MutationFailure)


async def test_store_error_is_a_mutation_failure(database, seed, monkeypatch):
    monkeypatch.setattr(database, "update_event_lock", AsyncMock(side_effect=SQLAlchemyError("boom")))
    with pytest.raises(MutationFailure) as exc:
        await service.lock(seed.god, seed.event.id)
    assert not isinstance(exc.value, LockUpdateNotApplied)


async def test_verification_mismatch_is_flagged_not_raised(database, seed, monkeypatch, caplog):
    # reports success without writing, so the read-back still sees an unlocked event
    monkeypatch.setattr(database, "update_event_lock", AsyncMock(return_value=1))

    outcome = await service.lock(seed.god, seed.event.id)

    assert outcome.changed is True
    assert outcome.verified is False
    assert "mismatch" in caplog.text


async def test_unknown_event(database, seed):
    with pytest.raises(NotFound):
        await service.lock(seed.god, 999)


async def test_lock_changes_are_audited(database, seed):
    await service.lock(seed.god, seed.event.id)
    entries, total = await audit_logger.list_entries(action="lock.set_lock")
    assert total == 1
    assert entries[0].actor == "root"


async def test_lock_succeeds_when_audit_cannot_be_stored(database, seed, monkeypatch):
    monkeypatch.setattr(database, "create_audit_log", AsyncMock(side_effect=SQLAlchemyError("audit table gone")))

    outcome = await service.lock(seed.god, seed.event.id)

    assert outcome.changed and outcome.verified
    assert (await database.get_event(seed.event.id)).is_locked


async def test_lock_failure_survives_failing_audit(database, seed, monkeypatch):
    monkeypatch.setattr(database, "update_event_lock", AsyncMock(return_value=0))
    monkeypatch.setattr(database, "create_audit_log", AsyncMock(side_effect=SQLAlchemyError("down")))
    with pytest.raises(LockUpdateNotApplied):
        await service.lock(seed.god, seed.event.id)
