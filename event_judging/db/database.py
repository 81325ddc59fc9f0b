# db/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, ClassVar, Self, Any, List, Sequence, Tuple

from sqlalchemy import select, func, update, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from event_judging.config import Settings
from event_judging.db.models._base import Base
from event_judging.db.models.event import Event
from event_judging.db.models.criterion import JudgmentCriterion
from event_judging.db.models.participant import Participant
from event_judging.db.models.judge import Judge
from event_judging.db.models.mark import Mark, MARK_CONFLICT_KEY
from event_judging.db.models.admin_user import AdminUser
from event_judging.db.models.audit_log import AuditLog
from event_judging.db.schemas.event import EventCreate, EventRead, EventLockUpdate
from event_judging.db.schemas.criterion import CriterionCreate, CriterionRead
from event_judging.db.schemas.participant import ParticipantCreate, ParticipantRead, ParticipantUpdate
from event_judging.db.schemas.judge import JudgeCreate, JudgeRead
from event_judging.db.schemas.mark import MarkCreate, MarkFilter, MarkRead
from event_judging.db.schemas.admin_user import AdminUserCreate, AdminUserRead
from event_judging.db.schemas.audit_log import AuditLogCreate, AuditLogRead
from event_judging.utils.sentinels import provided


class DataBase():
    """
    Async SQLAlchemy database singleton; the only place that touches sessions and ORM rows.
    Usage:
        db = DataBase()  # same instance everywhere
        async with db.session() as s:
            ...
    Every public method returns pydantic DTOs, never ORM objects.
    """
    _instance: ClassVar[Optional["DataBase"]] = None

    def __new__(cls, *args: Any, **kwargs: Any) -> Self:
        if cls._instance is None:
            cls._instance = super().__new__(cls)

        return cls._instance

    def __init__(self, echo: Optional[bool] = None) -> None:
        if getattr(self, "_initialized", False):
            return

        settings = Settings()
        self._engine: AsyncEngine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo if echo is None else echo,
            pool_pre_ping=True,
        )
        self._sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

        self._initialized = True

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provides an AsyncSession with safe commit/rollback semantics.
        """
        session: AsyncSession = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # --- schema management helpers ---

    async def create_all(self) -> None:
        """
        Create tables based on Base metadata. Use only in dev/tests; prefer migrations in prod.
        """
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close pooled connections (call before the event loop goes away)."""
        await self._engine.dispose()

    def _insert(self, model):
        # ON CONFLICT is dialect specific
        if self._engine.dialect.name == "sqlite":
            return sqlite_insert(model)
        return pg_insert(model)

    # ---------- Events ----------

    async def get_event(self, event_id: Optional[int]) -> Optional[EventRead]:
        """
        Fetch an event by primary key.

        Args:
            event_id: Event id. If None, returns None immediately.

        Returns:
            Optional[EventRead]: DTO if found; otherwise None.
        """
        if event_id is None:
            return None

        async with self.session() as s:
            row = await s.get(Event, event_id)

        return EventRead.model_validate(row) if row is not None else None

    async def list_events(
        self,
        *,
        active_only: bool = True,
        event_ids: Optional[Sequence[int]] = None,
    ) -> list[EventRead]:
        """
        List events ordered by id ASC.

        Args:
            active_only: keep only rows with is_active = true.
            event_ids: restrict to these ids; None means no restriction, an empty list yields [].
        """
        if event_ids is not None and not event_ids:
            return []

        async with self.session() as s:
            stmt = select(Event).order_by(Event.id.asc())
            if active_only:
                stmt = stmt.where(Event.is_active.is_(True))
            if event_ids is not None:
                stmt = stmt.where(Event.id.in_(list(event_ids)))
            rows = (await s.execute(stmt)).scalars().all()

        return [EventRead.model_validate(r) for r in rows]

    async def create_event(self, payload: EventCreate) -> EventRead:
        event = Event(
            name=payload.name,
            description=payload.description,
            date=payload.date,
            is_active=payload.is_active,
            rounds=payload.rounds,
            is_locked=False,
        )
        async with self.session() as s:
            s.add(event)
            await s.flush()
            await s.refresh(event)

        return EventRead.model_validate(event)

    async def update_event_lock(
        self,
        event_id: int,
        payload: EventLockUpdate,
        *,
        expected_locked: Optional[bool] = None,
    ) -> int:
        """
        Write the lock fields of one event with a single conditional UPDATE.

        Args:
            event_id: Event primary key.
            payload: New is_locked / locked_by / locked_at values.
            expected_locked: When given, the row only matches if its current
                is_locked equals this value.

        Returns:
            int: number of affected rows (0 or 1). Zero means the event is gone
            or no longer in the expected state; the caller decides what that means.

        Raises:
            SQLAlchemyError: on transport/constraint failures.
        """
        stmt = (
            update(Event)
            .where(Event.id == event_id)
            .values(
                is_locked=payload.is_locked,
                locked_by=payload.locked_by,
                locked_at=payload.locked_at,
            )
            .execution_options(synchronize_session=False)
        )
        if expected_locked is not None:
            stmt = stmt.where(Event.is_locked == expected_locked)

        async with self.session() as s:
            result = await s.execute(stmt)
            affected = int(result.rowcount or 0)

        return affected

    # ---------- Criteria ----------

    async def list_criteria(self, event_id: int) -> list[CriterionRead]:
        """Criteria of an event ordered by id."""
        async with self.session() as s:
            stmt = (
                select(JudgmentCriterion)
                .where(JudgmentCriterion.event_id == event_id)
                .order_by(JudgmentCriterion.id.asc())
            )
            rows = (await s.execute(stmt)).scalars().all()
        return [CriterionRead.model_validate(r) for r in rows]

    async def create_criterion(self, payload: CriterionCreate) -> CriterionRead:
        obj = JudgmentCriterion(
            event_id=payload.event_id,
            criteria_name=payload.criteria_name,
            max_marks=payload.max_marks,
        )
        async with self.session() as s:
            s.add(obj)
            await s.flush()
            await s.refresh(obj)
        return CriterionRead.model_validate(obj)

    # ---------- Participants ----------

    async def get_participant(self, participant_id: Optional[int]) -> Optional[ParticipantRead]:
        if participant_id is None:
            return None

        async with self.session() as s:
            row = await s.get(Participant, participant_id)

        return ParticipantRead.model_validate(row) if row is not None else None

    async def list_participants(self, event_id: int, category: Optional[str] = None) -> list[ParticipantRead]:
        """
        Participants of an event, optionally restricted to one category.

        Notes:
            - Ordered by (category, team_id, name, id). The first row of a team
              in this order is the team's scoring representative.
        """
        async with self.session() as s:
            stmt = select(Participant).where(Participant.event_id == event_id)
            if category is not None:
                stmt = stmt.where(Participant.category == category)
            stmt = stmt.order_by(
                Participant.category.asc(),
                Participant.team_id.asc(),
                Participant.name.asc(),
                Participant.id.asc(),
            )
            rows = (await s.execute(stmt)).scalars().all()
        return [ParticipantRead.model_validate(r) for r in rows]

    async def list_categories(self, event_id: int) -> list[str]:
        """Distinct non-empty categories used by an event's participants."""
        async with self.session() as s:
            stmt = (
                select(Participant.category)
                .where(Participant.event_id == event_id, Participant.category.is_not(None))
                .distinct()
            )
            values = (await s.execute(stmt)).scalars().all()
        return sorted(v for v in values if v)

    async def create_participants(self, payloads: List[ParticipantCreate]) -> list[ParticipantRead]:
        """
        Insert several participants (one team) in one transaction.

        Raises:
            IntegrityError: on FK/constraint violations; nothing is inserted.
        """
        objs = [
            Participant(
                event_id=p.event_id,
                name=p.name,
                school_code=p.school_code,
                team_id=p.team_id,
                solo_marking=p.solo_marking,
                class_name=p.class_name,
                scholar_number=p.scholar_number,
                category=p.category,
            )
            for p in payloads
        ]
        async with self.session() as s:
            s.add_all(objs)
            await s.flush()
            for obj in objs:
                await s.refresh(obj)
        return [ParticipantRead.model_validate(o) for o in objs]

    async def update_participant(self, payload: ParticipantUpdate) -> ParticipantRead:
        """
        Partially update a participant by id.
        Only fields explicitly provided (i.e., not MISSING) are updated.

        Raises:
            LookupError: if the participant does not exist.
        """
        async with self.session() as s:
            db_obj = await s.get(Participant, payload.id)
            if db_obj is None:
                raise LookupError("Participant not found.")

            for field in ("name", "school_code", "team_id", "solo_marking", "class_name", "scholar_number", "category"):
                value = getattr(payload, field)
                if provided(value):
                    setattr(db_obj, field, value)

            await s.flush()
            await s.refresh(db_obj)
            return ParticipantRead.model_validate(db_obj)

    async def delete_participant(self, participant_id: int) -> bool:
        """
        Delete a participant and all of its marks in one transaction.

        Returns:
            bool: True if a participant row was deleted.
        """
        async with self.session() as s:
            await s.execute(delete(Mark).where(Mark.participant_id == participant_id))
            result = await s.execute(delete(Participant).where(Participant.id == participant_id))
            return bool(result.rowcount)

    # ---------- Judges ----------

    async def get_judge(self, judge_id: Optional[int]) -> Optional[JudgeRead]:
        if judge_id is None:
            return None

        async with self.session() as s:
            row = await s.get(Judge, judge_id)

        return JudgeRead.model_validate(row) if row is not None else None

    async def list_judges(self) -> list[JudgeRead]:
        async with self.session() as s:
            rows = (await s.execute(select(Judge).order_by(Judge.name.asc(), Judge.id.asc()))).scalars().all()
        return [JudgeRead.model_validate(r) for r in rows]

    async def create_judge(self, payload: JudgeCreate) -> JudgeRead:
        obj = Judge(name=payload.name, username=payload.username)
        async with self.session() as s:
            s.add(obj)
            await s.flush()
            await s.refresh(obj)
        return JudgeRead.model_validate(obj)

    # ---------- Marks ----------

    async def list_marks(self, flt: MarkFilter) -> list[MarkRead]:
        """
        Mark rows of an event, optionally restricted to participants and/or one judge.

        Notes:
            - An empty participant_ids list yields [] without a query.
        """
        if flt.participant_ids is not None and not flt.participant_ids:
            return []

        async with self.session() as s:
            stmt = select(Mark).where(Mark.event_id == flt.event_id)
            if flt.participant_ids is not None:
                stmt = stmt.where(Mark.participant_id.in_(flt.participant_ids))
            if flt.judge_id is not None:
                stmt = stmt.where(Mark.judge_id == flt.judge_id)
            stmt = stmt.order_by(Mark.participant_id, Mark.criteria_id, Mark.round_number, Mark.judge_id)
            rows = (await s.execute(stmt)).scalars().all()
        return [MarkRead.model_validate(r) for r in rows]

    async def upsert_marks(self, rows: List[MarkCreate]) -> list[MarkRead]:
        """
        Insert or overwrite marks keyed by the full natural key
        (event_id, participant_id, criteria_id, round_number, judge_id).

        Args:
            rows: Marks to write. Keys must be unique within the batch;
                one statement cannot touch the same row twice.

        Returns:
            list[MarkRead]: the written rows as stored.

        Raises:
            ValueError: if the batch repeats a key.
            SQLAlchemyError: on store failures (the whole batch is rolled back).
        """
        if not rows:
            return []

        keys = [r.key() for r in rows]
        if len(set(keys)) != len(keys):
            raise ValueError("Duplicate mark keys in one upsert batch.")

        stmt = self._insert(Mark).values(
            [
                {
                    "event_id": r.event_id,
                    "participant_id": r.participant_id,
                    "criteria_id": r.criteria_id,
                    "round_number": r.round_number,
                    "marks_obtained": r.marks_obtained,
                    "judge_id": r.judge_id,
                }
                for r in rows
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(MARK_CONFLICT_KEY),
            set_={"marks_obtained": stmt.excluded.marks_obtained},
        )

        async with self.session() as s:
            written = (
                await s.scalars(stmt.returning(Mark), execution_options={"populate_existing": True})
            ).all()
            result = [MarkRead.model_validate(m) for m in written]

        return result

    # ---------- Admin users ----------

    async def get_admin_user(self, username: Optional[str]) -> Optional[AdminUserRead]:
        if not username:
            return None

        async with self.session() as s:
            row = await s.get(AdminUser, username)

        return AdminUserRead.model_validate(row) if row is not None else None

    async def create_admin_user(self, payload: AdminUserCreate) -> AdminUserRead:
        obj = AdminUser(
            username=payload.username,
            password_hash=payload.password_hash,
            is_god_admin=payload.is_god_admin,
            event_access=list(payload.event_access),
        )
        async with self.session() as s:
            s.add(obj)
            await s.flush()
            await s.refresh(obj)
        return AdminUserRead.model_validate(obj)

    # ---------------------------------
    # Audit log helpers
    # ---------------------------------

    async def create_audit_log(self, payload: AuditLogCreate) -> AuditLogRead:
        """Persist a new audit log entry."""
        async with self.session() as s:
            record = AuditLog(
                actor=payload.actor,
                action=payload.action,
                payload=dict(payload.payload or {}),
            )
            s.add(record)
            await s.flush()
            await s.refresh(record)
            return AuditLogRead.model_validate(record)

    async def list_audit_logs(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        actor: str | None = None,
        action: str | None = None,
    ) -> Tuple[list[AuditLogRead], int]:
        """Return paginated audit log entries filtered by actor/action, newest first."""
        limit = max(0, int(limit))
        offset = max(0, int(offset))

        async with self.session() as s:
            stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            count_stmt = select(func.count(AuditLog.id))
            if actor:
                stmt = stmt.where(AuditLog.actor == actor)
                count_stmt = count_stmt.where(AuditLog.actor == actor)
            if action:
                stmt = stmt.where(AuditLog.action == action)
                count_stmt = count_stmt.where(AuditLog.action == action)

            if limit:
                stmt = stmt.limit(limit)
            if offset:
                stmt = stmt.offset(offset)

            rows = (await s.execute(stmt)).scalars().all()
            total = int((await s.execute(count_stmt)).scalar_one())

        return [AuditLogRead.model_validate(row) for row in rows], total
