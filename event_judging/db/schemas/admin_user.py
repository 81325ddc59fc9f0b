# db/schemas/admin_user.py
from typing import List
from pydantic import Field, field_validator
from event_judging.db.schemas._base import OrmModel

class AdminUserBase(OrmModel):
    username: str = Field(..., min_length=1)
    is_god_admin: bool = False
    event_access: List[int] = Field(default_factory=list)

    @field_validator("event_access", mode="before")
    @classmethod
    def _coerce_ids(cls, v):
        # older rows store ids as strings
        if v is None:
            return []
        return [int(x) for x in v]

class AdminUserCreate(AdminUserBase):
    password_hash: str

class AdminUserRead(AdminUserBase):
    password_hash: str

class AdminSession(AdminUserBase):
    """The subset of an admin row kept in the session store."""
