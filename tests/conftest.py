# tests/conftest.py
import os
import tempfile
from types import SimpleNamespace

# Settings is read once per process; point it at a throwaway SQLite file first.
_DB_DIR = tempfile.mkdtemp(prefix="event-judging-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["AUDIT_PERSIST"] = "true"
os.environ["TIE_BREAK"] = "share_rank"
os.environ["DEFAULT_CATEGORY"] = "General Category"

import pytest

from event_judging.db.database import DataBase
from event_judging.db.schemas.admin_user import AdminUserCreate
from event_judging.db.schemas.criterion import CriterionCreate
from event_judging.db.schemas.event import EventCreate
from event_judging.db.schemas.judge import JudgeCreate
from event_judging.db.schemas.participant import ParticipantCreate
from event_judging.services.identity import Identity


@pytest.fixture
async def database():
    db = DataBase()
    await db.drop_all()
    await db.create_all()
    yield db
    await db.dispose()


def _member(event_id: int, name: str, school: str, team: str, solo: bool, category: str) -> ParticipantCreate:
    return ParticipantCreate(
        event_id=event_id,
        name=name,
        school_code=school,
        team_id=team,
        solo_marking=solo,
        category=category,
    )


@pytest.fixture
async def seed(database):
    """
    Two-round "Dance Fest" with two criteria and two judges:

    - Art:          T3 solo (Eve)
    - Junior Dance: T1 solo (Alice, Bob), T2 team-scored (Carol first, Dan)

    plus a one-round "Science Fair" with a single participant.
    """
    event = await database.create_event(EventCreate(name="Dance Fest", rounds=2))
    other = await database.create_event(EventCreate(name="Science Fair", rounds=1))

    creativity = await database.create_criterion(CriterionCreate(event_id=event.id, criteria_name="Creativity", max_marks=10))
    technique = await database.create_criterion(CriterionCreate(event_id=event.id, criteria_name="Technique", max_marks=5))
    other_criterion = await database.create_criterion(CriterionCreate(event_id=other.id, criteria_name="Method", max_marks=10))

    judge_one = await database.create_judge(JudgeCreate(name="Judge One", username="j1"))
    judge_two = await database.create_judge(JudgeCreate(name="Judge Two", username="j2"))

    alice, bob = await database.create_participants([
        _member(event.id, "Alice", "S01", "T1", True, "Junior Dance"),
        _member(event.id, "Bob", "S01", "T1", True, "Junior Dance"),
    ])
    carol, dan = await database.create_participants([
        _member(event.id, "Carol", "S02", "T2", False, "Junior Dance"),
        _member(event.id, "Dan", "S02", "T2", False, "Junior Dance"),
    ])
    (eve,) = await database.create_participants([_member(event.id, "Eve", "S03", "T3", True, "Art")])
    (zed,) = await database.create_participants([_member(other.id, "Zed", "S09", "Z1", True, "Physics")])

    await database.create_admin_user(AdminUserCreate(username="root", password_hash="pw", is_god_admin=True))
    await database.create_admin_user(AdminUserCreate(username="dance", password_hash="pw2", event_access=[event.id]))

    return SimpleNamespace(
        event=event,
        other=other,
        creativity=creativity,
        technique=technique,
        other_criterion=other_criterion,
        judge_one=judge_one,
        judge_two=judge_two,
        alice=alice,
        bob=bob,
        carol=carol,
        dan=dan,
        eve=eve,
        zed=zed,
        god=Identity.god_admin("root"),
        event_admin=Identity.event_admin("dance", [event.id]),
        outsider=Identity.event_admin("science", [other.id]),
        judge=Identity.unauthenticated(),
    )
