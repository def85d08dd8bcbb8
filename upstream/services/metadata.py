"""Key-value metadata keyed by ``(post_id, meta_key)``.

Single-valued keys hold one row; repeated keys hold one row per value. Values
are JSON encoded so their Python type survives storage. Rows written by other
tools as plain text are returned as strings.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.session import TransactionManager
from ..models.post import Post, PostMeta, STATUS_TRASH


def encode_meta_value(value: Any) -> str:
    return json.dumps(value)


def decode_meta_value(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return raw


class MetadataStore:
    def __init__(self, db: Session, tx: TransactionManager) -> None:
        self.db = db
        self.tx = tx

    def _rows(self, post_id: int, key: str) -> list[PostMeta]:
        stmt = (
            select(PostMeta)
            .where(PostMeta.post_id == post_id, PostMeta.meta_key == key)
            .order_by(PostMeta.meta_id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get(self, post_id: int, key: str, single: bool = True) -> Any:
        """Return the first value (``None`` if absent) or, with ``single=False``, every value."""

        rows = self._rows(post_id, key)
        if single:
            return decode_meta_value(rows[0].meta_value) if rows else None
        return [decode_meta_value(row.meta_value) for row in rows]

    def exists(self, post_id: int, key: str) -> bool:
        return bool(self._rows(post_id, key))

    def set(self, post_id: int, key: str, value: Any) -> None:
        rows = self._rows(post_id, key)
        encoded = encode_meta_value(value)
        if rows:
            rows[0].meta_value = encoded
            for extra in rows[1:]:
                self.db.delete(extra)
        else:
            self.db.add(PostMeta(post_id=post_id, meta_key=key, meta_value=encoded))
        self.tx.persist()

    def add(self, post_id: int, key: str, value: Any) -> None:
        self.db.add(PostMeta(post_id=post_id, meta_key=key, meta_value=encode_meta_value(value)))
        self.tx.persist()

    def delete(self, post_id: int, key: str) -> None:
        self.db.execute(delete(PostMeta).where(PostMeta.post_id == post_id, PostMeta.meta_key == key))
        self.tx.persist()

    def replace_all(self, post_id: int, key: str, values: Iterable[Any]) -> None:
        """Swap every row of a repeated key for ``values`` in one write."""

        self.db.execute(delete(PostMeta).where(PostMeta.post_id == post_id, PostMeta.meta_key == key))
        for value in values:
            self.db.add(PostMeta(post_id=post_id, meta_key=key, meta_value=encode_meta_value(value)))
        self.tx.persist()

    def find_post_ids(
        self,
        key: str,
        value: Any,
        *,
        post_type: str | None = None,
        include_trashed: bool = False,
    ) -> list[int]:
        """Ids of posts holding ``key == value``, oldest first.

        Scalars also match rows stored as plain text.
        """

        candidates = {encode_meta_value(value)}
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            candidates.add(str(value))
        stmt = (
            select(PostMeta.post_id)
            .join(Post, Post.id == PostMeta.post_id)
            .where(PostMeta.meta_key == key, PostMeta.meta_value.in_(sorted(candidates)))
        )
        if post_type:
            stmt = stmt.where(Post.post_type == post_type)
        if not include_trashed:
            stmt = stmt.where(Post.post_status != STATUS_TRASH)
        stmt = stmt.distinct().order_by(PostMeta.post_id)
        return [int(post_id) for post_id in self.db.execute(stmt).scalars().all()]
