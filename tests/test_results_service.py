# tests/test_results_service.py
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from event_judging.db.enums import DenialReason, TieBreak
from event_judging.db.schemas.mark import MarkCreate
from event_judging.db.schemas.results import AggregationConfig
from event_judging.errors import AccessDenied
from event_judging.services.lock import LockService
from event_judging.services.results import ResultsService

service = ResultsService()


@pytest.fixture
async def scored(database, seed):
    def m(participant, criterion, value, judge, round_number=1):
        return MarkCreate(
            event_id=seed.event.id, participant_id=participant.id, criteria_id=criterion.id,
            round_number=round_number, marks_obtained=value, judge_id=judge.id,
        )

    await database.upsert_marks([
        m(seed.alice, seed.creativity, 5, seed.judge_one),
        m(seed.bob, seed.technique, 3, seed.judge_one, round_number=2),
        m(seed.alice, seed.creativity, 4, seed.judge_two),
        m(seed.carol, seed.creativity, 10, seed.judge_one),
        m(seed.dan, seed.creativity, 9, seed.judge_one),
        m(seed.eve, seed.creativity, 6, seed.judge_two),
    ])
    return seed


async def test_event_results_per_category(scored):
    results = await service.event_results(scored.judge, scored.event.id)

    assert results.marks_loaded
    assert results.total_possible_per_round == 15
    assert results.school_codes == ["S03", "S01", "S02"]
    assert [c.category for c in results.categories] == ["Art", "Junior Dance"]

    art, junior = results.categories
    assert [(t.team_id, t.total_marks, t.rank) for t in art.teams] == [("T3", 6, 1)]
    assert [(t.team_id, t.total_marks, t.rank) for t in junior.teams] == [("T1", 12, 1), ("T2", 10, 2)]
    assert junior.teams[1].ignored_mark_rows == 1


async def test_results_by_judge(scored):
    config = AggregationConfig(partition_by_judge=True, tie_break=TieBreak.DENSE_INDEX)
    results = await service.event_results(scored.god, scored.event.id, config)

    t1 = results.categories[1].teams[0]
    assert t1.marks_by_judge == {scored.judge_one.id: 8, scored.judge_two.id: 4}


async def test_locked_event_results_hidden_from_judges(scored):
    await LockService().lock(scored.god, scored.event.id)
    with pytest.raises(AccessDenied) as exc:
        await service.event_results(scored.judge, scored.event.id)
    assert exc.value.reason == DenialReason.LOCKED

    results = await service.event_results(scored.event_admin, scored.event.id)
    assert results.event.is_locked


async def test_marks_failure_keeps_structure(scored, database, monkeypatch):
    monkeypatch.setattr(database, "list_marks", AsyncMock(side_effect=SQLAlchemyError("gone")))
    results = await service.event_results(scored.god, scored.event.id)
    assert results.marks_loaded is False
    assert [c.category for c in results.categories] == ["Art", "Junior Dance"]
    assert all(t.total_marks == 0 for c in results.categories for t in c.teams)


async def test_accessible_events(scored):
    both = [scored.event.id, scored.other.id]
    assert [e.id for e in await service.accessible_events(scored.judge)] == both
    assert [e.id for e in await service.accessible_events(scored.event_admin)] == [scored.event.id]
    assert [e.id for e in await service.accessible_events(scored.outsider)] == [scored.other.id]

    await LockService().lock(scored.god, scored.event.id)
    assert [e.id for e in await service.accessible_events(scored.judge)] == [scored.other.id]
    assert [e.id for e in await service.accessible_events(scored.god)] == both


async def test_overview_covers_every_readable_event(scored):
    overview = await service.overview(scored.god)
    assert [r.event.name for r in overview] == ["Dance Fest", "Science Fair"]
    assert overview[1].categories[0].teams[0].total_marks == 0


async def test_denied_results_fetch_nothing_else(scored, database, monkeypatch):
    await LockService().lock(scored.god, scored.event.id)
    fetches = {name: AsyncMock() for name in ("list_criteria", "list_participants", "list_judges", "list_marks")}
    for name, mock in fetches.items():
        monkeypatch.setattr(database, name, mock)

    with pytest.raises(AccessDenied):
        await service.event_results(scored.judge, scored.event.id)

    for mock in fetches.values():
        mock.assert_not_awaited()
