# services/marks.py
import logging
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Self, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.database import DataBase
from event_judging.db.schemas.event import EventRead
from event_judging.db.schemas.judge import JudgeRead
from event_judging.db.schemas.mark import MarkCreate, MarkEntry, MarkFilter, MarkRead
from event_judging.db.schemas.results import JudgeSheet
from event_judging.errors import InvalidInput, MutationFailure, NotFound
from event_judging.i18n import Localizer
from event_judging.services import aggregation
from event_judging.services.access import AccessPolicy
from event_judging.services.audit_log import instrument_service_class
from event_judging.services.identity import Identity
from event_judging.utils.ids import parse_id

logger = logging.getLogger(__name__)

MarkKey = Tuple[int, int, int, int, int]


class MarkService:
	_instance: ClassVar[Optional["MarkService"]] = None

	def __new__(cls) -> Self:
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __init__(self) -> None:
		if getattr(self, "_initialized", False):
			return

		self._database = DataBase()
		self._policy = AccessPolicy()
		self._messages = Localizer()
		self._initialized = True

	async def _get_event(self, event_id: Any) -> EventRead:
		event_id = parse_id(event_id, "event_id")
		event = await self._database.get_event(event_id)
		if event is None:
			raise NotFound("Event", event_id)
		return event

	async def _get_judge(self, judge_id: Any) -> JudgeRead:
		judge_id = parse_id(judge_id, "judge_id")
		judge = await self._database.get_judge(judge_id)
		if judge is None:
			raise NotFound("Judge", judge_id)
		return judge

	async def load_judge_sheet(
		self,
		identity: Identity,
		event_id: Any,
		category: str,
		judge_id: Any,
	) -> JudgeSheet:
		"""
		Everything one judge needs to mark one category: criteria, teams with
		their running totals, and the judge's own marks.

		A failure of the marks query alone leaves the sheet usable with empty
		marks and ``marks_loaded=False``.
		"""
		event = await self._get_event(event_id)
		self._policy.require_read(identity, event)
		judge = await self._get_judge(judge_id)

		criteria = await self._database.list_criteria(event.id)
		by_category = aggregation.categorize_participants(await self._database.list_participants(event.id))
		participants = by_category.get(category, [])

		marks_loaded = True
		try:
			marks = await self._database.list_marks(
				MarkFilter(event_id=event.id, participant_ids=[p.id for p in participants], judge_id=judge.id)
			)
		except SQLAlchemyError as e:
			logger.warning("Marks for event %s / judge %s could not be loaded: %s", event.id, judge.id, e)
			marks, marks_loaded = [], False

		result = aggregation.aggregate_category(
			participants,
			criteria,
			marks,
			event.rounds,
			judges=[judge],
			config=aggregation.default_config(),
			category=category,
		)
		return JudgeSheet(
			event=event,
			judge=judge,
			category=category,
			criteria=criteria,
			teams=result.teams,
			marks=aggregation.index_marks(marks, judge_id=judge.id),
			total_possible_per_round=aggregation.total_possible_per_round(criteria),
			marks_loaded=marks_loaded,
		)

	def _validate_entries(
		self,
		event: EventRead,
		judge: JudgeRead,
		entries: Sequence[MarkEntry | Mapping[str, Any]],
		criteria: Mapping[int, Any],
		participant_ids: set[int],
	) -> List[MarkCreate]:
		rows: Dict[MarkKey, MarkCreate] = {}
		for raw in entries:
			try:
				entry = raw if isinstance(raw, MarkEntry) else MarkEntry.model_validate(raw)
			except ValidationError as e:
				raise InvalidInput(f"Invalid mark entry: {e.errors()[0]['msg']}") from e

			if entry.participant_id not in participant_ids:
				raise InvalidInput(self._messages(
					"errors.unknown_participant", participant_id=entry.participant_id, event_id=event.id,
				))
			criterion = criteria.get(entry.criteria_id)
			if criterion is None:
				raise InvalidInput(self._messages(
					"errors.unknown_criterion", criteria_id=entry.criteria_id, event_id=event.id,
				))
			if not 1 <= entry.round_number <= event.rounds:
				raise InvalidInput(self._messages(
					"errors.round_out_of_range", round_number=entry.round_number, rounds=event.rounds,
				))
			if not 0 <= entry.marks_obtained <= criterion.max_marks:
				raise InvalidInput(self._messages(
					"errors.mark_out_of_range", criterion=criterion.criteria_name, max_marks=criterion.max_marks,
				))

			row = MarkCreate(event_id=event.id, judge_id=judge.id, **entry.model_dump())
			# one statement cannot touch a row twice; the last value typed wins
			rows.pop(row.key(), None)
			rows[row.key()] = row
		return list(rows.values())

	async def save_marks(
		self,
		identity: Identity,
		event_id: Any,
		judge_id: Any,
		entries: Sequence[MarkEntry | Mapping[str, Any]],
	) -> List[MarkRead]:
		"""
		Validate and upsert a judge's marks for one event.

		The lock and access checks run before anything is written. Re-sending
		the same cells overwrites them.
		"""
		event = await self._get_event(event_id)
		self._policy.require_mark_entry(identity, event)
		judge = await self._get_judge(judge_id)

		criteria = {c.id: c for c in await self._database.list_criteria(event.id)}
		participant_ids = {p.id for p in await self._database.list_participants(event.id)}
		rows = self._validate_entries(event, judge, entries, criteria, participant_ids)
		if not rows:
			return []

		try:
			written = await self._database.upsert_marks(rows)
		except SQLAlchemyError as e:
			logger.error("Saving %d mark(s) for event %s failed: %s", len(rows), event.id, e)
			raise MutationFailure(f"Saving marks for event {event.id} failed.") from e

		logger.info("Saved %d mark(s) for event %s, judge %s", len(written), event.id, judge.id)
		return written


instrument_service_class(
	MarkService,
	prefix="marks",
	exclude={"load_judge_sheet"},
)
