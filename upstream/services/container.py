"""Bundle of storage capabilities handed to entities.

Entities never reach for module-level globals; everything they touch comes
from the :class:`Services` instance they were built with.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.orm import Session

from ..db.session import TransactionManager, get_db
from .activity import ActivityLog
from .metadata import MetadataStore
from .projects import ProjectLookup, TaskCollection
from .records import RecordStore, SaveHooks
from .terms import TermStore
from .users import UserDirectory


@dataclass
class Services:
    db: Session
    tx: TransactionManager
    meta: MetadataStore
    records: RecordStore
    users: UserDirectory
    projects: ProjectLookup
    tasks: TaskCollection
    activity: ActivityLog
    terms: TermStore

    @property
    def hooks(self) -> SaveHooks:
        return self.records.hooks


def build_services(db: Session, hooks: SaveHooks | None = None) -> Services:
    tx = TransactionManager(db)
    meta = MetadataStore(db, tx)
    records = RecordStore(db, tx, meta, hooks)
    return Services(
        db=db,
        tx=tx,
        meta=meta,
        records=records,
        users=UserDirectory(db, tx),
        projects=ProjectLookup(records),
        tasks=TaskCollection(meta),
        activity=ActivityLog(db, tx),
        terms=TermStore(db, tx),
    )


def get_services(db: Session = Depends(get_db)) -> Services:
    """FastAPI dependency: one service bundle per request, milestone hooks attached."""

    from ..crud.milestones import register_milestone_hooks

    services = build_services(db)
    register_milestone_hooks(services)
    return services
