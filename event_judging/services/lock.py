# services/lock.py
import logging
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional, Self

from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.database import DataBase
from event_judging.db.schemas.event import EventLockUpdate, EventRead
from event_judging.db.schemas.results import LockOutcome
from event_judging.errors import LockUpdateNotApplied, MutationFailure, NotFound
from event_judging.services.access import AccessPolicy
from event_judging.services.audit_log import instrument_service_class
from event_judging.services.identity import Identity
from event_judging.utils.ids import parse_id

logger = logging.getLogger(__name__)


class LockService:
	_instance: ClassVar[Optional["LockService"]] = None

	def __new__(cls) -> Self:
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __init__(self) -> None:
		if getattr(self, "_initialized", False):
			return

		self._database = DataBase()
		self._policy = AccessPolicy()
		self._initialized = True

	async def _get_event(self, event_id: Any) -> EventRead:
		event_id = parse_id(event_id, "event_id")
		event = await self._database.get_event(event_id)
		if event is None:
			raise NotFound("Event", event_id)
		return event

	async def set_lock(self, identity: Identity, event_id: Any, locked: bool) -> LockOutcome:
		"""
		Move an event to the requested lock state.

		Asking for the state the event is already in writes nothing and
		returns ``changed=False``. Otherwise one conditional UPDATE is sent
		(matching the current state), followed by one verification read.
		"""
		event = await self._get_event(event_id)
		self._policy.require_admin(identity, event)

		if event.is_locked == locked:
			logger.info("Event %s already %s", event.id, "locked" if locked else "unlocked")
			return LockOutcome(event=event, changed=False)

		if locked:
			payload = EventLockUpdate(
				is_locked=True,
				locked_by=identity.username,
				locked_at=datetime.now(timezone.utc),
			)
		else:
			payload = EventLockUpdate(is_locked=False)

		try:
			affected = await self._database.update_event_lock(event.id, payload, expected_locked=event.is_locked)
		except SQLAlchemyError as e:
			logger.error("Lock update for event %s failed: %s", event.id, e)
			raise MutationFailure(f"Lock update for event {event.id} failed.") from e

		if affected == 0:
			logger.warning("Lock update for event %s affected no rows", event.id)
			raise LockUpdateNotApplied(event.id)

		expected = event.model_copy(update=payload.model_dump())
		try:
			stored = await self._database.get_event(event.id)
		except SQLAlchemyError as e:
			logger.warning("Could not re-read event %s after lock update: %s", event.id, e)
			return LockOutcome(event=expected, changed=True, verified=False)

		if stored is None or stored.is_locked != locked:
			logger.warning(
				"Event %s lock state mismatch after update: wanted is_locked=%s, store has %s",
				event.id, locked, None if stored is None else stored.is_locked,
			)
			return LockOutcome(event=stored or expected, changed=True, verified=False)

		logger.info("Event %s %s by %s", event.id, "locked" if locked else "unlocked", identity.actor_label)
		return LockOutcome(event=stored, changed=True, verified=True)

	async def lock(self, identity: Identity, event_id: Any) -> LockOutcome:
		return await self.set_lock(identity, event_id, True)

	async def unlock(self, identity: Identity, event_id: Any) -> LockOutcome:
		return await self.set_lock(identity, event_id, False)

	async def toggle(self, identity: Identity, event_id: Any) -> LockOutcome:
		event = await self._get_event(event_id)
		return await self.set_lock(identity, event.id, not event.is_locked)


instrument_service_class(
	LockService,
	prefix="lock",
	exclude={"lock", "unlock", "toggle"},
)
