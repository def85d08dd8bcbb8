"""SQLAlchemy model for the project audit trail."""

from __future__ import annotations

import json

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class Activity(Base):
    """One audit entry: who did what to which part of a project."""

    __tablename__ = "activity"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, nullable=False, index=True)
    subject = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    payload_blob = Column("payload", Text, nullable=True)
    user_id = Column(Integer, nullable=True)
    created_at = Column(Text, nullable=False)

    @property
    def payload(self) -> dict[str, object] | None:
        if not self.payload_blob:
            return None
        try:
            decoded = json.loads(self.payload_blob)
        except (TypeError, json.JSONDecodeError):
            return None
        return decoded if isinstance(decoded, dict) else None

    @payload.setter
    def payload(self, value: dict[str, object] | None) -> None:
        self.payload_blob = json.dumps(value) if value is not None else None


__all__ = ["Activity"]
