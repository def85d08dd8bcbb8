"""Collection-level helpers for milestones: listing, payload driven create/update, hooks."""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import NotFound, ValidationError
from ..core.sanitize import sanitize_text_field
from ..entities.milestone import Milestone
from ..models.post import Post
from ..services import dates
from ..services.container import Services

logger = logging.getLogger("upstream.milestones")

# Payload key -> setter name, applied in this order.
_SETTERS: dict[str, str] = {
    "name": "set_name",
    "notes": "set_notes",
    "project_id": "set_project_id",
    "assigned_to": "set_assigned_to",
    "start_date": "set_start_date",
    "end_date": "set_end_date",
    "order": "set_order",
    "progress": "set_progress",
    "color": "set_color",
    "category_ids": "set_category_ids",
    "legacy_id": "set_legacy_id",
    "legacy_milestone_code": "set_legacy_milestone_code",
    "created_time_in_utc": "set_created_time_in_utc",
    "task_count": "set_task_count",
    "task_open": "set_task_open",
}


def register_milestone_hooks(services: Services) -> None:
    """Touch the parent project whenever a milestone is saved through the normal path."""

    def on_milestone_saved(post: Post) -> None:
        project_id = services.meta.get(post.id, Milestone.META_PROJECT_ID)
        if not project_id:
            return
        try:
            services.projects.touch(int(project_id))
        except NotFound:
            logger.warning(
                "milestone.orphaned",
                extra={"extra_data": {"milestone_id": post.id, "project_id": project_id}},
            )

    services.hooks.add(Milestone.POST_TYPE, on_milestone_saved)


def list_project_milestones(services: Services, project_id: int) -> list[Milestone]:
    project = services.projects.get_project_by_id(project_id)
    ids = services.meta.find_post_ids(Milestone.META_PROJECT_ID, project.id, post_type=Milestone.POST_TYPE)
    if not ids:
        return []
    milestones = [Milestone(services, post=post) for post in services.records.list_by_type(Milestone.POST_TYPE, ids)]
    milestones.sort(key=lambda item: (item.get_order(), item.id))
    return milestones


def get_milestone(services: Services, milestone_id: int) -> Milestone:
    milestone = Milestone.by_id(services, milestone_id)
    if milestone.post.is_trashed:
        raise NotFound(f"Milestone {milestone_id} not found")
    return milestone


def _validate_payload(services: Services, payload: dict[str, Any]) -> None:
    """Reject a bad payload before any setter runs, so nothing is half applied."""

    if "name" in payload and not sanitize_text_field(payload.get("name") or ""):
        raise ValidationError("name is required")
    if payload.get("project_id"):
        services.projects.get_project_by_id(int(payload["project_id"]))
    for key in ("start_date", "end_date"):
        if key in payload:
            dates.to_mysql_date(payload[key])
    if "progress" in payload:
        Milestone.validate_progress(payload["progress"])
    if "category_ids" in payload:
        services.terms.validate_term_ids(payload["category_ids"], Milestone.CATEGORY_TAXONOMY)


def _apply_payload(milestone: Milestone, payload: dict[str, Any]) -> None:
    for key, setter in _SETTERS.items():
        if key in payload:
            getattr(milestone, setter)(payload[key])


def create_milestone(services: Services, project_id: int, payload: dict[str, Any]) -> Milestone:
    """Create, populate and store a milestone under ``project_id``."""

    if project_id <= 0:
        raise NotFound(f"Project {project_id} not found")
    data = dict(payload)
    data.pop("project_id", None)
    data.setdefault("name", "")
    _validate_payload(services, data)
    name = data.pop("name")
    created_by = data.pop("created_by", 0)
    milestone = Milestone.create(services, name, created_by, project_id)
    _apply_payload(milestone, data)
    milestone.store()
    logger.info(
        "milestone.created",
        extra={"extra_data": {"milestone_id": milestone.id, "project_id": project_id}},
    )
    return milestone


def update_milestone(services: Services, milestone: Milestone, payload: dict[str, Any]) -> Milestone:
    _validate_payload(services, payload)
    _apply_payload(milestone, payload)
    return milestone
