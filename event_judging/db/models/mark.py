# db/models/mark.py
from typing import Optional
from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from event_judging.db.models._base import Base

MARK_CONFLICT_KEY = ("event_id", "participant_id", "criteria_id", "round_number", "judge_id")

class Mark(Base):
    __tablename__ = "marks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    participant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    criteria_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("judgment_criteria.id", ondelete="CASCADE"), nullable=False
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    marks_obtained: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    judge_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("judges.id", ondelete="SET NULL"), nullable=True
    )

    participant = relationship("Participant", back_populates="marks")

    __table_args__ = (
        UniqueConstraint(*MARK_CONFLICT_KEY, name="uq_marks_natural_key"),
        CheckConstraint("marks_obtained >= 0", name="check_marks_obtained"),
        CheckConstraint("round_number >= 1", name="check_mark_round"),
        Index("ix_marks_event_judge", "event_id", "judge_id"),
    )
