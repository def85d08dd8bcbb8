"""SQLAlchemy models for taxonomy terms (milestone categories)."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text

from ..db.session import Base


class Term(Base):
    __tablename__ = "terms"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False)
    taxonomy = Column(Text, nullable=False, index=True)


class TermRelationship(Base):
    __tablename__ = "term_relationships"
    __allow_unmapped__ = True

    object_id = Column(Integer, ForeignKey("posts.id"), primary_key=True)
    term_id = Column(Integer, ForeignKey("terms.id"), primary_key=True)


__all__ = ["Term", "TermRelationship"]
