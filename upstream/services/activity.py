"""Audit trail for project changes."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.session import TransactionManager
from ..models.activity import Activity
from .dates import utcnow_mysql

logger = logging.getLogger("upstream.activity")

ACTION_REMOVE = "remove"


class ActivityLog:
    def __init__(self, db: Session, tx: TransactionManager) -> None:
        self.db = db
        self.tx = tx

    def record(
        self,
        project_id: int,
        subject: str,
        action: str,
        payload: dict[str, Any] | None = None,
        user_id: int | None = None,
    ) -> Activity:
        entry = Activity(
            project_id=project_id,
            subject=subject,
            action=action,
            user_id=user_id,
            created_at=utcnow_mysql(),
        )
        entry.payload = payload
        self.db.add(entry)
        self.tx.persist()
        logger.info(
            "activity.recorded",
            extra={"extra_data": {"project_id": project_id, "subject": subject, "action": action}},
        )
        return entry

    def for_project(self, project_id: int) -> list[Activity]:
        stmt = select(Activity).where(Activity.project_id == project_id).order_by(Activity.id)
        return list(self.db.execute(stmt).scalars().all())
