# tests/test_utils.py
import pytest

from event_judging.db.schemas.participant import ParticipantUpdate
from event_judging.errors import InvalidInput
from event_judging.utils.ids import parse_id
from event_judging.utils.sentinels import MISSING, provided


def test_partial_update_tells_missing_from_none():
    update = ParticipantUpdate(id=1, category=None)
    assert provided(update.category) and update.category is None
    assert not provided(update.name)
    assert update.name is MISSING


@pytest.mark.parametrize("raw, expected", [(5, 5), ("12", 12), (" 7 ", 7)])
def test_parse_id(raw, expected):
    assert parse_id(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, 0, -3, True, 1.5])
def test_parse_id_rejects(raw):
    with pytest.raises(InvalidInput):
        parse_id(raw, "event_id")
