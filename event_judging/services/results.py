# services/results.py
import logging
from typing import Any, ClassVar, List, Optional, Self

from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.database import DataBase
from event_judging.db.enums import IdentityKind
from event_judging.db.schemas.event import EventRead
from event_judging.db.schemas.mark import MarkFilter
from event_judging.db.schemas.results import AggregationConfig, EventResults
from event_judging.errors import NotFound
from event_judging.services import aggregation
from event_judging.services.access import AccessPolicy
from event_judging.services.identity import Identity
from event_judging.utils.ids import parse_id

logger = logging.getLogger(__name__)


class ResultsService:
	_instance: ClassVar[Optional["ResultsService"]] = None

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

	async def event_results(
		self,
		identity: Identity,
		event_id: Any,
		config: Optional[AggregationConfig] = None,
	) -> EventResults:
		"""Ranked results of every category of an event, marks of all judges summed."""
		event_id = parse_id(event_id, "event_id")
		event = await self._database.get_event(event_id)
		if event is None:
			raise NotFound("Event", event_id)
		self._policy.require_read(identity, event)
		return await self._build(event, config)

	async def _build(self, event: EventRead, config: Optional[AggregationConfig]) -> EventResults:
		criteria = await self._database.list_criteria(event.id)
		participants = await self._database.list_participants(event.id)
		judges = await self._database.list_judges()

		marks_loaded = True
		try:
			marks = await self._database.list_marks(MarkFilter(event_id=event.id))
		except SQLAlchemyError as e:
			logger.warning("Marks for event %s could not be loaded: %s", event.id, e)
			marks, marks_loaded = [], False

		categories = aggregation.aggregate_event(
			participants, criteria, marks, event.rounds, judges, config or aggregation.default_config(),
		)
		return EventResults(
			event=event,
			criteria=criteria,
			judges=judges,
			categories=categories,
			total_possible_per_round=aggregation.total_possible_per_round(criteria),
			school_codes=aggregation.school_codes(participants),
			marks_loaded=marks_loaded,
		)

	async def accessible_events(self, identity: Identity) -> List[EventRead]:
		"""Active events the caller may open. Judges do not see locked events."""
		if identity.kind == IdentityKind.EVENT_ADMIN:
			events = await self._database.list_events(event_ids=identity.event_ids)
		else:
			events = await self._database.list_events()
		return [e for e in events if self._policy.can_read(identity, e)]

	async def overview(
		self,
		identity: Identity,
		config: Optional[AggregationConfig] = None,
	) -> List[EventResults]:
		"""Results of every event the caller can read, one entry per event."""
		return [await self._build(event, config) for event in await self.accessible_events(identity)]
