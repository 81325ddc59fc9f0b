# services/access.py
import logging
from typing import ClassVar, Optional, Self

from event_judging.db.enums import DenialReason
from event_judging.db.schemas.event import EventRead
from event_judging.errors import AccessDenied
from event_judging.i18n import Localizer
from event_judging.services.identity import Identity

logger = logging.getLogger(__name__)


class AccessPolicy:
	"""
	Decides what an identity may do with an event.

	- god admins may read and write every event, locked or not;
	- event admins may read and write only the events they were granted;
	- unauthenticated callers (judges) may read and mark unlocked events only.

	The lock blocks mark entry for everybody. Only the lock toggle itself
	is open to eligible admins while an event is locked.
	"""
	_instance: ClassVar[Optional["AccessPolicy"]] = None

	def __new__(cls) -> Self:
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __init__(self) -> None:
		if getattr(self, "_initialized", False):
			return

		self._messages = Localizer()
		self._initialized = True

	def _locked(self, event: EventRead) -> AccessDenied:
		locked_by = event.locked_by or "unknown"
		return AccessDenied(
			DenialReason.LOCKED,
			self._messages("errors.locked", locked_by=locked_by),
			locked_by=locked_by,
		)

	def _unauthorized(self, event: EventRead) -> AccessDenied:
		return AccessDenied(
			DenialReason.UNAUTHORIZED,
			self._messages("errors.unauthorized", event_id=event.id),
		)

	def check_read(self, identity: Identity, event: EventRead) -> Optional[AccessDenied]:
		if identity.is_admin:
			return None if identity.has_event_access(event.id) else self._unauthorized(event)
		if event.is_locked:
			return self._locked(event)
		return None

	def check_admin(self, identity: Identity, event: EventRead) -> Optional[AccessDenied]:
		if identity.is_admin and identity.has_event_access(event.id):
			return None
		return self._unauthorized(event)

	def check_mark_entry(self, identity: Identity, event: EventRead) -> Optional[AccessDenied]:
		if event.is_locked:
			return self._locked(event)
		if identity.is_admin and not identity.has_event_access(event.id):
			return self._unauthorized(event)
		return None

	def can_read(self, identity: Identity, event: EventRead) -> bool:
		return self.check_read(identity, event) is None

	def require_read(self, identity: Identity, event: EventRead) -> None:
		self._raise(identity, event, self.check_read(identity, event), "read")

	def require_admin(self, identity: Identity, event: EventRead) -> None:
		self._raise(identity, event, self.check_admin(identity, event), "administer")

	def require_mark_entry(self, identity: Identity, event: EventRead) -> None:
		self._raise(identity, event, self.check_mark_entry(identity, event), "mark")

	def _raise(self, identity: Identity, event: EventRead, denial: Optional[AccessDenied], what: str) -> None:
		if denial is None:
			return
		logger.info(
			"Denied %s on event %s for %s (%s)",
			what, event.id, identity.actor_label, denial.reason,
		)
		raise denial
