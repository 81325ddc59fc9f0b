# tests/test_participant_service.py
import pytest

from event_judging.db.enums import DenialReason
from event_judging.db.schemas.mark import MarkCreate, MarkFilter
from event_judging.db.schemas.participant import ParticipantUpdate
from event_judging.errors import AccessDenied, InvalidInput, NotFound
from event_judging.services.participant import ParticipantService

service = ParticipantService()


def member(name, **extra):
    data = {"name": name, "school_code": "S05", "team_id": "T9", "category": "Senior Dance"}
    data.update(extra)
    return data


async def test_admin_adds_team(database, seed):
    created = await service.add_team(seed.event_admin, seed.event.id, [
        member("Fay", event_id=seed.other.id, **{"class": "8A"}),
        member("Gus"),
    ])

    assert [p.name for p in created] == ["Fay", "Gus"]
    assert {p.event_id for p in created} == {seed.event.id}
    assert created[0].class_name == "8A"
    assert await database.list_categories(seed.event.id) == ["Art", "Junior Dance", "Senior Dance"]


@pytest.mark.parametrize("missing", ["name", "school_code", "team_id"])
async def test_required_fields(database, seed, missing):
    bad = member("Hal")
    bad[missing] = "  "
    with pytest.raises(InvalidInput):
        await service.add_team(seed.god, seed.event.id, [member("Ivy"), bad])
    assert len(await database.list_participants(seed.event.id, "Senior Dance")) == 0


async def test_empty_team(database, seed):
    with pytest.raises(InvalidInput):
        await service.add_team(seed.god, seed.event.id, [])


@pytest.mark.parametrize("who", ["judge", "outsider"])
async def test_management_needs_event_access(database, seed, who):
    identity = getattr(seed, who)
    with pytest.raises(AccessDenied) as exc:
        await service.add_team(identity, seed.event.id, [member("Jo")])
    assert exc.value.reason == DenialReason.UNAUTHORIZED
    with pytest.raises(AccessDenied):
        await service.delete_participant(identity, seed.alice.id)


async def test_update_participant(database, seed):
    updated = await service.update_participant(seed.god, ParticipantUpdate(id=seed.dan.id, solo_marking=True))
    assert updated.solo_marking is True
    assert updated.name == "Dan"

    with pytest.raises(NotFound):
        await service.update_participant(seed.god, ParticipantUpdate(id=999, name="Nobody"))


async def test_delete_participant_drops_their_marks(database, seed):
    await database.upsert_marks([
        MarkCreate(
            event_id=seed.event.id, participant_id=seed.eve.id, criteria_id=seed.creativity.id,
            round_number=1, marks_obtained=4, judge_id=seed.judge_one.id,
        ),
    ])

    assert await service.delete_participant(seed.event_admin, seed.eve.id) is True
    assert await database.list_marks(MarkFilter(event_id=seed.event.id)) == []
    with pytest.raises(NotFound):
        await service.delete_participant(seed.event_admin, seed.eve.id)


async def test_list_participants(database, seed):
    people = await service.list_participants(seed.judge, seed.event.id, "Art")
    assert [p.name for p in people] == ["Eve"]
