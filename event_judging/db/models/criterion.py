# db/models/criterion.py
from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from event_judging.db.models._base import Base

class JudgmentCriterion(Base):
    __tablename__ = "judgment_criteria"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    criteria_name: Mapped[str] = mapped_column(String(256), nullable=False)
    max_marks: Mapped[int] = mapped_column(Integer, nullable=False)

    event = relationship("Event", back_populates="criteria")

    __table_args__ = (
        CheckConstraint("max_marks > 0", name="check_criterion_max_marks"),
    )
