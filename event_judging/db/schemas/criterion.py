# db/schemas/criterion.py
from pydantic import Field
from event_judging.db.schemas._base import OrmModel

class CriterionBase(OrmModel):
    event_id: int
    criteria_name: str = Field(..., min_length=1)
    max_marks: int = Field(..., gt=0)

class CriterionCreate(CriterionBase): ...
class CriterionRead(CriterionBase):
    id: int
