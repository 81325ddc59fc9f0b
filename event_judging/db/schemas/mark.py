# db/schemas/mark.py
from typing import List, Optional
from pydantic import Field
from event_judging.db.schemas._base import OrmModel

class MarkEntry(OrmModel):
    """A single cell typed into a judging sheet."""
    participant_id: int
    criteria_id: int
    round_number: int = Field(..., ge=1)
    marks_obtained: int = Field(..., ge=0)

class MarkCreate(MarkEntry):
    event_id: int
    judge_id: int

    def key(self) -> tuple[int, int, int, int, int]:
        return (self.event_id, self.participant_id, self.criteria_id, self.round_number, self.judge_id)

class MarkRead(OrmModel):
    id: int
    event_id: int
    participant_id: int
    criteria_id: int
    round_number: int
    marks_obtained: int
    judge_id: Optional[int] = None

class MarkFilter(OrmModel):
    event_id: int
    participant_ids: Optional[List[int]] = None
    judge_id: Optional[int] = None
