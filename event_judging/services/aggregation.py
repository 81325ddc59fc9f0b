# services/aggregation.py
"""
Score aggregation: sparse mark rows -> team totals, per-judge breakdowns and ranks.

Everything here is pure. The services load rows through DataBase and hand
them over; nothing in this module talks to the store.
"""
import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from event_judging.config import Settings
from event_judging.db.enums import LevelRank, TieBreak
from event_judging.db.schemas.criterion import CriterionRead
from event_judging.db.schemas.judge import JudgeRead
from event_judging.db.schemas.mark import MarkRead
from event_judging.db.schemas.participant import ParticipantRead
from event_judging.db.schemas.results import (
    AggregationConfig,
    CategoryResults,
    ParticipantResult,
    TeamResult,
)

logger = logging.getLogger(__name__)

# (participant_id, criteria_id, round_number) -> marks summed over judges
MarkIndex = Dict[Tuple[int, int, int], int]

_LEVEL_WORDS = re.compile(r"(junior|intermediate|senior)\s*", re.IGNORECASE)

Ranked = TypeVar("Ranked", TeamResult, ParticipantResult)


def default_config() -> AggregationConfig:
    return AggregationConfig(tie_break=TieBreak(Settings().tie_break))


def index_marks(marks: Iterable[MarkRead], judge_id: Optional[int] = None) -> MarkIndex:
    """Sum marks per cell; with ``judge_id`` only that judge's rows are kept."""
    index: MarkIndex = defaultdict(int)
    for m in marks:
        if judge_id is not None and m.judge_id != judge_id:
            continue
        index[(m.participant_id, m.criteria_id, m.round_number)] += m.marks_obtained
    return dict(index)


def total_possible_per_round(criteria: Sequence[CriterionRead]) -> int:
    return sum(c.max_marks for c in criteria)


def school_codes(participants: Iterable[ParticipantRead]) -> List[str]:
    seen: Dict[str, None] = {}
    for p in participants:
        seen.setdefault(p.school_code, None)
    return list(seen)


def scoring_participants(team: TeamResult) -> List[ParticipantRead]:
    """Members whose rows count: everybody when solo-marked, else only the first one."""
    if team.is_solo_marking:
        return list(team.participants)
    return list(team.participants[:1])


def _criteria_sums(
    participant_ids: Iterable[int],
    criteria: Sequence[CriterionRead],
    index: MarkIndex,
    rounds: int,
) -> Dict[int, int]:
    by_criteria: Dict[int, int] = {c.id: 0 for c in criteria}
    for pid in participant_ids:
        for c in criteria:
            for round_number in range(1, rounds + 1):
                by_criteria[c.id] += index.get((pid, c.id, round_number), 0)
    return by_criteria


def compute_team_breakdown(
    team: TeamResult,
    criteria: Sequence[CriterionRead],
    marks: Iterable[MarkRead] | MarkIndex,
    rounds: int,
) -> Dict[int, int]:
    """criteria_id -> marks of the team's scoring members summed across rounds (and judges)."""
    index = marks if isinstance(marks, dict) else index_marks(marks)
    return _criteria_sums((p.id for p in scoring_participants(team)), criteria, index, rounds)


def compute_team_total(
    team: TeamResult,
    criteria: Sequence[CriterionRead],
    marks: Iterable[MarkRead] | MarkIndex,
    rounds: int,
) -> int:
    """
    Team total over rounds 1..rounds and every criterion.

    A missing row counts as 0. Rows of several judges for the same cell are
    summed. Rows outside the event's criteria or rounds are not counted.
    """
    return sum(compute_team_breakdown(team, criteria, marks, rounds).values())


def compute_participant_total(
    participant: ParticipantRead,
    criteria: Sequence[CriterionRead],
    marks: Iterable[MarkRead] | MarkIndex,
    rounds: int,
) -> Dict[int, int]:
    index = marks if isinstance(marks, dict) else index_marks(marks)
    return _criteria_sums((participant.id,), criteria, index, rounds)


def compute_judge_breakdown(
    participant: ParticipantRead,
    judges: Sequence[JudgeRead],
    criteria: Sequence[CriterionRead],
    marks: Iterable[MarkRead],
    rounds: int,
) -> Dict[int, Dict[int, int]]:
    """judge_id -> criteria_id -> marks across rounds. Every judge is present, zeros when absent."""
    marks = list(marks)
    return {
        j.id: compute_participant_total(participant, criteria, index_marks(marks, judge_id=j.id), rounds)
        for j in judges
    }


def count_ignored_rows(team: TeamResult, marks: Iterable[MarkRead]) -> int:
    """Non-zero rows of non-first members of a team-scored team. Such rows never reach a total."""
    if team.is_solo_marking or len(team.participants) < 2:
        return 0
    others = {p.id for p in team.participants[1:]}
    return sum(1 for m in marks if m.participant_id in others and m.marks_obtained)


def rank_teams(items: Sequence[Ranked], tie_break: TieBreak = TieBreak.SHARE_RANK) -> List[Ranked]:
    """
    Sort by total descending and assign ranks.

    ``share_rank``: equal totals share a rank and ranks stay dense, [30, 30, 20] -> [1, 1, 2].
    ``dense_index``: rank is position + 1, [30, 30, 20] -> [1, 2, 3].
    Equal totals keep their input order.
    """
    ordered = sorted(items, key=lambda x: -x.total_marks)
    ranked: List[Ranked] = []
    rank = 0
    previous: Optional[int] = None
    for position, item in enumerate(ordered):
        if tie_break == TieBreak.DENSE_INDEX:
            rank = position + 1
        elif item.total_marks != previous:
            rank += 1
            previous = item.total_marks
        ranked.append(item.model_copy(update={"rank": rank}))
    return ranked


def category_level(category: str) -> LevelRank:
    lowered = category.lower()
    if "junior" in lowered:
        return LevelRank.JUNIOR
    if "intermediate" in lowered:
        return LevelRank.INTERMEDIATE
    if "senior" in lowered:
        return LevelRank.SENIOR
    return LevelRank.UNSPECIFIED


def category_type(category: str) -> str:
    stripped = _LEVEL_WORDS.sub("", category).strip()
    return stripped or category


def category_sort_key(category: str) -> Tuple[str, int]:
    return category_type(category), int(category_level(category))


def sort_categories(categories: Iterable[str]) -> List[str]:
    return sorted(categories, key=category_sort_key)


def group_teams(participants: Sequence[ParticipantRead], category: str) -> List[TeamResult]:
    """
    Group participants by team_id, keeping first-appearance order.
    The first member sets the team's school code and marking mode.
    """
    teams: Dict[str, TeamResult] = {}
    for p in participants:
        team = teams.get(p.team_id)
        if team is None:
            teams[p.team_id] = TeamResult(
                team_id=p.team_id,
                category=category,
                school_code=p.school_code,
                is_solo_marking=p.solo_marking,
                participants=[p],
            )
        else:
            team.participants.append(p)
    return list(teams.values())


def categorize_participants(
    participants: Iterable[ParticipantRead],
    default_category: Optional[str] = None,
) -> Dict[str, List[ParticipantRead]]:
    """category -> participants, categories in display order, members in input order."""
    label = default_category or Settings().default_category
    grouped: Dict[str, List[ParticipantRead]] = defaultdict(list)
    for p in participants:
        grouped[p.category or label].append(p)
    return {name: grouped[name] for name in sort_categories(grouped)}


def aggregate_category(
    participants: Sequence[ParticipantRead],
    criteria: Sequence[CriterionRead],
    marks: Sequence[MarkRead],
    rounds: int,
    judges: Sequence[JudgeRead] = (),
    config: Optional[AggregationConfig] = None,
    category: Optional[str] = None,
) -> CategoryResults:
    """Totals, breakdowns and ranks for the participants of one category."""
    config = config or default_config()
    label = category or (participants[0].category if participants else None) or Settings().default_category
    index = index_marks(marks)

    member_ids = {p.id for p in participants}
    marks_of_category = [m for m in marks if m.participant_id in member_ids]

    teams: List[TeamResult] = []
    for team in group_teams(participants, label):
        by_criteria = compute_team_breakdown(team, criteria, index, rounds)
        team_ids = {p.id for p in team.participants}
        ignored = count_ignored_rows(team, (m for m in marks_of_category if m.participant_id in team_ids))
        if ignored:
            logger.warning(
                "Team %s in %r is team-scored but has %d mark row(s) for non-first members; they are not counted",
                team.team_id, label, ignored,
            )

        by_judge = None
        if config.partition_by_judge:
            by_judge = {j.id: 0 for j in judges}
            for p in scoring_participants(team):
                for judge_id, per_criteria in compute_judge_breakdown(p, judges, criteria, marks_of_category, rounds).items():
                    by_judge[judge_id] += sum(per_criteria.values())

        teams.append(team.model_copy(update={
            "total_marks": sum(by_criteria.values()),
            "marks_by_criteria": by_criteria,
            "marks_by_judge": by_judge,
            "ignored_mark_rows": ignored,
        }))

    counted_ids = {p.id for t in teams for p in scoring_participants(t)}
    people: List[ParticipantResult] = []
    for p in participants:
        by_criteria = compute_participant_total(p, criteria, index, rounds)
        people.append(ParticipantResult(
            participant=p,
            total_marks=sum(by_criteria.values()),
            marks_by_criteria=by_criteria,
            counted=p.id in counted_ids,
        ))

    return CategoryResults(
        category=label,
        teams=rank_teams(teams, config.tie_break),
        participants=rank_teams(people, config.tie_break),
    )


def aggregate_event(
    participants: Sequence[ParticipantRead],
    criteria: Sequence[CriterionRead],
    marks: Sequence[MarkRead],
    rounds: int,
    judges: Sequence[JudgeRead] = (),
    config: Optional[AggregationConfig] = None,
    default_category: Optional[str] = None,
) -> List[CategoryResults]:
    """One ranked result per category, categories in display order."""
    config = config or default_config()
    return [
        aggregate_category(members, criteria, marks, rounds, judges, config, category=name)
        for name, members in categorize_participants(participants, default_category).items()
    ]
