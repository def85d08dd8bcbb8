"""User directory lookups used for authorship checks and legacy exports."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from ..core.sanitize import sanitize_ids, sanitize_text_field
from ..db.session import TransactionManager
from ..models.user import User
from .dates import utcnow_mysql


class UserDirectory:
    def __init__(self, db: Session, tx: TransactionManager) -> None:
        self.db = db
        self.tx = tx

    def get(self, user_id: int | None) -> User | None:
        if not user_id:
            return None
        return self.db.get(User, user_id)

    def exists(self, user_id: int | None) -> bool:
        return self.get(user_id) is not None

    def display_name(self, user_id: int | None) -> str:
        """The user's display name, falling back to the login; ``""`` for unknown ids."""

        user = self.get(user_id)
        if user is None:
            return ""
        return user.display_name or user.user_login

    def display_names(self, user_ids: Iterable[object]) -> str:
        """Comma separated display names, in the order of ``user_ids``.

        Unknown ids are skipped. This is the legacy "assigned to" sort key.
        """

        names = (self.display_name(uid) for uid in sanitize_ids(user_ids))
        return ", ".join(name for name in names if name)

    def create(self, login: str, display_name: str = "", email: str | None = None) -> User:
        login = sanitize_text_field(login)
        if not login:
            raise ValueError("login is required")
        user = User(
            user_login=login,
            display_name=sanitize_text_field(display_name) or login,
            user_email=email,
            created_at=utcnow_mysql(),
        )
        self.db.add(user)
        self.tx.persist()
        self.db.refresh(user)
        return user
