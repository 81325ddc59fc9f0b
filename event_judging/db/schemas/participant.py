# db/schemas/participant.py
from typing import Optional
from pydantic import AliasChoices, Field, field_validator
from event_judging.db.schemas._base import OrmModel
from event_judging.utils.sentinels import Missing

class ParticipantBase(OrmModel):
    event_id: int
    name: str = Field(..., min_length=1)
    school_code: str = Field(..., min_length=1)
    team_id: str = Field(..., min_length=1)
    solo_marking: bool = False
    class_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("class_name", "class"),
        serialization_alias="class",
    )
    scholar_number: Optional[str] = None
    category: Optional[str] = None

    @field_validator("name", "school_code", "team_id", "category", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v if v else None
        return v

class ParticipantCreate(ParticipantBase): ...
class ParticipantUpdate(OrmModel):
    id: int
    name: str | Missing = Missing()
    school_code: str | Missing = Missing()
    team_id: str | Missing = Missing()
    solo_marking: bool | Missing = Missing()
    class_name: str | Missing | None = Field(
        default=Missing(),
        validation_alias=AliasChoices("class_name", "class"),
    )
    scholar_number: str | Missing | None = Missing()
    category: str | Missing | None = Missing()

class ParticipantRead(ParticipantBase):
    id: int
