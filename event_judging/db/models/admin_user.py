# db/models/admin_user.py
from typing import List
from sqlalchemy import JSON, Boolean, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from event_judging.db.models._base import Base

class AdminUser(Base):
    __tablename__ = "admin_users"

    username: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Compared by plain equality at login.
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    is_god_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    event_access: Mapped[List[int]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
