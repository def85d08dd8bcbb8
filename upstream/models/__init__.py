"""Importing this package registers every model with ``Base.metadata``."""

from __future__ import annotations

from .activity import Activity
from .post import Post, PostMeta
from .term import Term, TermRelationship
from .user import User

__all__ = ["Activity", "Post", "PostMeta", "Term", "TermRelationship", "User"]
