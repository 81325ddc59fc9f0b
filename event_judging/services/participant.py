# services/participant.py
import logging
from typing import Any, ClassVar, List, Mapping, Optional, Self, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.database import DataBase
from event_judging.db.schemas.event import EventRead
from event_judging.db.schemas.participant import ParticipantCreate, ParticipantRead, ParticipantUpdate
from event_judging.errors import InvalidInput, MutationFailure, NotFound
from event_judging.services.access import AccessPolicy
from event_judging.services.audit_log import instrument_service_class
from event_judging.services.identity import Identity
from event_judging.utils.ids import parse_id

logger = logging.getLogger(__name__)


class ParticipantService:
	_instance: ClassVar[Optional["ParticipantService"]] = None

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

	async def _get_participant(self, participant_id: Any) -> ParticipantRead:
		participant_id = parse_id(participant_id, "participant_id")
		participant = await self._database.get_participant(participant_id)
		if participant is None:
			raise NotFound("Participant", participant_id)
		return participant

	async def list_participants(
		self,
		identity: Identity,
		event_id: Any,
		category: Optional[str] = None,
	) -> List[ParticipantRead]:
		event = await self._get_event(event_id)
		self._policy.require_read(identity, event)
		return await self._database.list_participants(event.id, category)

	async def add_team(
		self,
		identity: Identity,
		event_id: Any,
		members: Sequence[ParticipantCreate | Mapping[str, Any]],
	) -> List[ParticipantRead]:
		"""
		Register the members of one team. Every member lands in ``event_id``
		whatever the payload says; all members are inserted or none.
		"""
		event = await self._get_event(event_id)
		self._policy.require_admin(identity, event)
		if not members:
			raise InvalidInput("A team needs at least one member.")

		payloads: List[ParticipantCreate] = []
		for raw in members:
			data = raw.model_dump() if isinstance(raw, ParticipantCreate) else dict(raw)
			data["event_id"] = event.id
			try:
				payloads.append(ParticipantCreate.model_validate(data))
			except ValidationError as e:
				err = e.errors()[0]
				field = ".".join(str(x) for x in err.get("loc", ())) or "participant"
				raise InvalidInput(f"Invalid {field}: {err['msg']}") from e

		try:
			created = await self._database.create_participants(payloads)
		except SQLAlchemyError as e:
			logger.error("Adding %d participant(s) to event %s failed: %s", len(payloads), event.id, e)
			raise MutationFailure(f"Adding participants to event {event.id} failed.") from e

		logger.info("Added %d participant(s) to event %s", len(created), event.id)
		return created

	async def update_participant(self, identity: Identity, payload: ParticipantUpdate) -> ParticipantRead:
		current = await self._get_participant(payload.id)
		event = await self._get_event(current.event_id)
		self._policy.require_admin(identity, event)

		try:
			return await self._database.update_participant(payload)
		except LookupError as e:
			raise NotFound("Participant", payload.id) from e
		except SQLAlchemyError as e:
			logger.error("Updating participant %s failed: %s", payload.id, e)
			raise MutationFailure(f"Updating participant {payload.id} failed.") from e

	async def delete_participant(self, identity: Identity, participant_id: Any) -> bool:
		"""Remove a participant together with every mark recorded for them."""
		current = await self._get_participant(participant_id)
		event = await self._get_event(current.event_id)
		self._policy.require_admin(identity, event)

		try:
			deleted = await self._database.delete_participant(current.id)
		except SQLAlchemyError as e:
			logger.error("Deleting participant %s failed: %s", current.id, e)
			raise MutationFailure(f"Deleting participant {current.id} failed.") from e

		if deleted:
			logger.info("Deleted participant %s from event %s", current.id, event.id)
		return deleted


instrument_service_class(
	ParticipantService,
	prefix="participants",
	exclude={"list_participants"},
)
