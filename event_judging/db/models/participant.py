# db/models/participant.py
from typing import Optional
from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from event_judging.db.models._base import Base

class Participant(Base):
    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    school_code: Mapped[str] = mapped_column(String(64), nullable=False)
    team_id: Mapped[str] = mapped_column(String(128), nullable=False)
    solo_marking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    class_name: Mapped[Optional[str]] = mapped_column("class", String(64), nullable=True)
    scholar_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    event = relationship("Event", back_populates="participants")
    marks = relationship("Mark", back_populates="participant", passive_deletes=True)

    __table_args__ = (
        Index("ix_participants_event_category_team", "event_id", "category", "team_id"),
    )
