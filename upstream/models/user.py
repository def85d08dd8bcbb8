"""SQLAlchemy model for the user directory."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class User(Base):
    __tablename__ = "users"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    user_login = Column(Text, nullable=False, unique=True)
    display_name = Column(Text, nullable=False, default="")
    user_email = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)


__all__ = ["User"]
