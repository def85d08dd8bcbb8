"""SQLAlchemy models for content records ("posts") and their metadata rows."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base

STATUS_PUBLISH = "publish"
STATUS_TRASH = "trash"


class Post(Base):
    """One content record: a project, a milestone or any other typed item."""

    __tablename__ = "posts"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    post_type = Column(Text, nullable=False, index=True)
    post_title = Column(Text, nullable=False, default="")
    post_content = Column(Text, nullable=False, default="")
    post_author = Column(Integer, nullable=False, default=0, index=True)
    post_status = Column(Text, nullable=False, default=STATUS_PUBLISH)
    post_date = Column(Text, nullable=False)
    post_modified = Column(Text, nullable=True)

    meta = relationship("PostMeta", back_populates="post", cascade="all, delete-orphan")

    @property
    def is_trashed(self) -> bool:
        return self.post_status == STATUS_TRASH


class PostMeta(Base):
    """Key-value row attached to a post. Repeated keys hold one row per value."""

    __tablename__ = "postmeta"
    __allow_unmapped__ = True
    __table_args__ = (Index("ix_postmeta_post_key", "post_id", "meta_key"),)

    meta_id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False)
    meta_key = Column(Text, nullable=False, index=True)
    # JSON encoded so ints, floats, bools and task lists survive a round trip
    meta_value = Column(Text, nullable=True)

    post = relationship("Post", back_populates="meta")


__all__ = ["Post", "PostMeta", "STATUS_PUBLISH", "STATUS_TRASH"]
