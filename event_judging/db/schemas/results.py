# db/schemas/results.py
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from event_judging.db.enums import TieBreak
from event_judging.db.schemas.criterion import CriterionRead
from event_judging.db.schemas.event import EventRead
from event_judging.db.schemas.judge import JudgeRead
from event_judging.db.schemas.participant import ParticipantRead

class AggregationConfig(BaseModel):
    partition_by_judge: bool = False
    tie_break: TieBreak = TieBreak.SHARE_RANK

class ParticipantResult(BaseModel):
    participant: ParticipantRead
    total_marks: int = 0
    marks_by_criteria: Dict[int, int] = Field(default_factory=dict)
    # False for non-first members of a team-scored team
    counted: bool = True
    rank: int = 0

class TeamResult(BaseModel):
    team_id: str
    category: str
    school_code: str
    is_solo_marking: bool
    participants: List[ParticipantRead]
    total_marks: int = 0
    marks_by_criteria: Dict[int, int] = Field(default_factory=dict)
    marks_by_judge: Optional[Dict[int, int]] = None
    ignored_mark_rows: int = 0
    rank: int = 0

class CategoryResults(BaseModel):
    category: str
    teams: List[TeamResult] = Field(default_factory=list)
    participants: List[ParticipantResult] = Field(default_factory=list)

class EventResults(BaseModel):
    event: EventRead
    criteria: List[CriterionRead]
    judges: List[JudgeRead] = Field(default_factory=list)
    categories: List[CategoryResults] = Field(default_factory=list)
    total_possible_per_round: int = 0
    school_codes: List[str] = Field(default_factory=list)
    marks_loaded: bool = True

class JudgeSheet(BaseModel):
    event: EventRead
    judge: JudgeRead
    category: str
    criteria: List[CriterionRead]
    teams: List[TeamResult]
    # (participant_id, criteria_id, round_number) -> marks_obtained
    marks: Dict[tuple[int, int, int], int] = Field(default_factory=dict)
    total_possible_per_round: int = 0
    marks_loaded: bool = True

class LockOutcome(BaseModel):
    event: EventRead
    changed: bool
    verified: bool = True
