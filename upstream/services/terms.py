"""Taxonomy terms attached to records (milestone categories)."""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..core.sanitize import sanitize_text_field
from ..db.session import TransactionManager
from ..models.term import Term, TermRelationship


def _slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class TermStore:
    def __init__(self, db: Session, tx: TransactionManager) -> None:
        self.db = db
        self.tx = tx

    def create(self, name: str, taxonomy: str) -> Term:
        name = sanitize_text_field(name)
        if not name:
            raise ValidationError("Term name is required")
        term = Term(name=name, slug=_slugify(name), taxonomy=taxonomy)
        self.db.add(term)
        self.tx.persist()
        self.db.refresh(term)
        return term

    def get_object_term_ids(self, object_id: int, taxonomy: str) -> list[int]:
        stmt = (
            select(Term.id)
            .join(TermRelationship, TermRelationship.term_id == Term.id)
            .where(TermRelationship.object_id == object_id, Term.taxonomy == taxonomy)
            .order_by(Term.id)
        )
        return [int(term_id) for term_id in self.db.execute(stmt).scalars().all()]

    def validate_term_ids(self, term_ids: Any, taxonomy: str) -> list[int]:
        """Check every id names a term in ``taxonomy``; raise ``ValidationError`` otherwise."""

        if not isinstance(term_ids, (list, tuple)):
            raise ValidationError("Category IDs must be an array.")
        cleaned: list[int] = []
        for raw in term_ids:
            if isinstance(raw, bool) or not str(raw).strip().isdigit():
                raise ValidationError(f"Term ID {raw} is invalid.")
            term = self.db.get(Term, int(raw))
            if term is None or term.taxonomy != taxonomy:
                raise ValidationError(f"Term ID {raw} is invalid.")
            if term.id not in cleaned:
                cleaned.append(term.id)
        return cleaned

    def set_object_terms(self, object_id: int, term_ids: list[int], taxonomy: str) -> None:
        stmt = (
            select(TermRelationship)
            .join(Term, Term.id == TermRelationship.term_id)
            .where(TermRelationship.object_id == object_id, Term.taxonomy == taxonomy)
        )
        for relationship in self.db.execute(stmt).scalars().all():
            self.db.delete(relationship)
        self.db.flush()
        for term_id in term_ids:
            self.db.add(TermRelationship(object_id=object_id, term_id=term_id))
        self.tx.persist()
