"""Content records (title, body, authorship, status) and save hooks.

Writes through :meth:`RecordStore.update` normally notify every registered
save hook. Internal writes made by entities while they are already handling
a change pass ``internal=True`` and skip the hooks entirely, so no listener
ever has to be removed and re-added around them.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import NotFound
from ..db.session import TransactionManager
from ..models.post import Post, STATUS_PUBLISH, STATUS_TRASH
from .dates import utcnow_mysql
from .metadata import MetadataStore

logger = logging.getLogger("upstream.records")

TRASH_META_STATUS = "_wp_trash_meta_status"
TRASH_META_TIME = "_wp_trash_meta_time"

_EDITABLE_FIELDS = {"post_title", "post_content", "post_author", "post_status"}

SaveHook = Callable[[Post], None]


class SaveHooks:
    """Listeners notified after a record is saved through the normal path."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[SaveHook]] = {}

    def add(self, post_type: str, hook: SaveHook) -> None:
        bucket = self._hooks.setdefault(post_type, [])
        if hook not in bucket:
            bucket.append(hook)

    def registered(self, post_type: str) -> list[SaveHook]:
        return list(self._hooks.get(post_type, []))

    def fire(self, post: Post) -> None:
        for hook in self.registered(post.post_type):
            hook(post)


class RecordStore:
    def __init__(
        self,
        db: Session,
        tx: TransactionManager,
        meta: MetadataStore,
        hooks: SaveHooks | None = None,
    ) -> None:
        self.db = db
        self.tx = tx
        self.meta = meta
        self.hooks = hooks or SaveHooks()

    def get(self, post_id: int | None) -> Post | None:
        if not post_id:
            return None
        return self.db.get(Post, post_id)

    def require(self, post_id: int | None, post_type: str | None = None) -> Post:
        post = self.get(post_id)
        if post is None or (post_type and post.post_type != post_type):
            label = post_type or "record"
            raise NotFound(f"{label} {post_id} not found")
        return post

    def list_by_type(self, post_type: str, ids: Iterable[int] | None = None, include_trashed: bool = False) -> list[Post]:
        stmt = select(Post).where(Post.post_type == post_type)
        if ids is not None:
            stmt = stmt.where(Post.id.in_(list(ids)))
        if not include_trashed:
            stmt = stmt.where(Post.post_status != STATUS_TRASH)
        return list(self.db.execute(stmt.order_by(Post.id)).scalars().all())

    def insert(
        self,
        post_type: str,
        *,
        title: str = "",
        content: str = "",
        author_id: int = 0,
        status: str = STATUS_PUBLISH,
    ) -> Post:
        now = utcnow_mysql()
        post = Post(
            post_type=post_type,
            post_title=title,
            post_content=content,
            post_author=author_id,
            post_status=status,
            post_date=now,
            post_modified=now,
        )
        self.db.add(post)
        self.tx.persist()
        self.db.refresh(post)
        logger.debug("record.inserted", extra={"extra_data": {"post_id": post.id, "post_type": post_type}})
        return post

    def update(self, post_id: int, *, internal: bool = False, **fields: object) -> Post:
        """Write record columns; save hooks run unless ``internal`` is set."""

        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update record fields: {', '.join(sorted(unknown))}")
        post = self.require(post_id)
        for name, value in fields.items():
            setattr(post, name, value)
        post.post_modified = utcnow_mysql()
        self.tx.persist()
        if not internal:
            self.hooks.fire(post)
        return post

    def trash(self, post_id: int) -> Post:
        """Soft delete: keep the record but mark it recoverable."""

        post = self.require(post_id)
        if post.is_trashed:
            return post
        self.meta.set(post.id, TRASH_META_STATUS, post.post_status)
        self.meta.set(post.id, TRASH_META_TIME, utcnow_mysql())
        post.post_status = STATUS_TRASH
        post.post_modified = utcnow_mysql()
        self.tx.persist()
        logger.info("record.trashed", extra={"extra_data": {"post_id": post.id, "post_type": post.post_type}})
        return post
