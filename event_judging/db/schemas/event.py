# db/schemas/event.py
from datetime import date as date_type, datetime
from typing import Optional
from pydantic import Field, model_validator
from event_judging.db.schemas._base import OrmModel

class EventBase(OrmModel):
    name: str
    description: str = ""
    date: Optional[date_type] = None
    is_active: bool = True
    rounds: int = Field(default=1, ge=1)

class EventCreate(EventBase): ...

class EventRead(EventBase):
    id: int
    is_locked: bool = False
    locked_by: Optional[str] = None
    locked_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _clear_lock_fields_when_unlocked(self) -> "EventRead":
        # unlocked events never carry lock metadata
        if not self.is_locked:
            self.locked_by = None
            self.locked_at = None
        return self

class EventLockUpdate(OrmModel):
    is_locked: bool
    locked_by: Optional[str] = None
    locked_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_lock_fields(self) -> "EventLockUpdate":
        if not self.is_locked and (self.locked_by is not None or self.locked_at is not None):
            raise ValueError("An unlock must clear locked_by and locked_at.")
        if self.is_locked and self.locked_at is None:
            raise ValueError("A lock must carry locked_at.")
        return self
