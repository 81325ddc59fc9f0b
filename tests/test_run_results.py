# tests/test_run_results.py
import logging

import pytest

from event_judging import run_results
from event_judging.errors import NotFound


async def test_prints_ranked_categories(seed, caplog):
    caplog.set_level(logging.INFO, logger="event_judging.run_results")
    await run_results.main([str(seed.event.id), "--by-judge", "--tie-break", "dense_index"])

    lines = [r.getMessage() for r in caplog.records if r.name == "event_judging.run_results"]
    assert lines[0] == 'Results for "Dance Fest" (2 round(s), 15 marks per round)'
    assert "Category: Art" in lines
    assert lines.index("Category: Art") < lines.index("Category: Junior Dance")
    assert "#1 team T3 (S03) - 0 marks" in lines
    assert "    Judge One: 0" in lines


async def test_unknown_event(database):
    with pytest.raises(NotFound):
        await run_results.main(["42"])
