# db/schemas/judge.py
from typing import Optional
from event_judging.db.schemas._base import OrmModel

class JudgeBase(OrmModel):
    name: str
    username: Optional[str] = None

class JudgeCreate(JudgeBase): ...
class JudgeRead(JudgeBase):
    id: int
