"""Milestone entity: a dated checkpoint inside a project.

Every setter persists its field immediately once the milestone has been
stored. Name and notes live on the record itself (title and body) and are
written through the internal path so milestone save hooks do not re-run.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import TYPE_CHECKING, Any

from ..core.config import settings
from ..core.errors import NotFound, ValidationError
from ..core.sanitize import intval, sanitize_ids, sanitize_text_field, sanitize_textarea_field
from ..services import dates
from ..services.activity import ACTION_REMOVE
from .struct import MetaField, PostObject

if TYPE_CHECKING:
    from ..services.container import Services

logger = logging.getLogger("upstream.milestones")


class MilestoneState(str, enum.Enum):
    UNSAVED = "unsaved"
    PERSISTED = "persisted"
    TRASHED = "trashed"


def _as_int(value: Any) -> int:
    return intval(value)


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_text(value: Any) -> str:
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().casefold() in {"1", "true", "yes", "y"}
    return bool(value)


class Milestone(PostObject):
    POST_TYPE = "upst_milestone"
    CATEGORY_TAXONOMY = "upst_milestone_category"
    ACTIVITY_SUBJECT = "_upstream_project_milestones"

    META_PROJECT_ID = "upst_project_id"
    META_ASSIGNED_TO = "upst_assigned_to"
    META_START_DATE = "upst_start_date"
    META_END_DATE = "upst_end_date"
    META_START_DATE_YMD = "upst_start_date__YMD"
    META_END_DATE_YMD = "upst_end_date__YMD"
    META_ORDER = "upst_order"
    META_PROGRESS = "upst_progress"
    META_COLOR = "upst_color"
    META_LEGACY_ID = "upst_legacy_id"
    META_LEGACY_MILESTONE_CODE = "upst_legacy_milestone_code"
    META_CREATED_TIME_IN_UTC = "upst_created_time_in_utc"
    META_TASK_COUNT = "upst_task_count"
    META_TASK_OPEN = "upst_task_open"

    FIELDS = {
        "project_id": MetaField(META_PROJECT_ID, load=_as_int, default=0),
        "assigned_to": MetaField(META_ASSIGNED_TO, repeated=True, load=_as_int),
        "start_date": MetaField(META_START_DATE, load=_as_text, mirror_keys=(META_START_DATE_YMD,)),
        "end_date": MetaField(META_END_DATE, load=_as_text, mirror_keys=(META_END_DATE_YMD,)),
        "order": MetaField(META_ORDER, load=_as_int, default=0),
        "progress": MetaField(META_PROGRESS, load=_as_float, default=0.0),
        "color": MetaField(META_COLOR, load=_as_text),
        "legacy_id": MetaField(META_LEGACY_ID, load=_as_text),
        "legacy_milestone_code": MetaField(META_LEGACY_MILESTONE_CODE, load=_as_text),
        "created_time_in_utc": MetaField(META_CREATED_TIME_IN_UTC, load=_as_bool),
        "task_count": MetaField(META_TASK_COUNT, load=_as_int),
        "task_open": MetaField(META_TASK_OPEN, load=_as_int),
    }

    def __init__(self, services: "Services", post_id: int | None = None, post=None) -> None:
        super().__init__(services, post_id=post_id, post=post)
        self._category_ids: list[int] | None = None

    # ---- construction

    @classmethod
    def create(cls, services: "Services", name: str, created_by: int, project_id: int = 0) -> "Milestone":
        """Build an unsaved milestone authored by ``created_by``.

        Nothing is written until :meth:`store` is called.
        """

        if not services.users.exists(intval(created_by)):
            raise ValidationError("User ID does not exist.")
        project = None
        if intval(project_id) > 0:
            project = services.projects.get_project_by_id(intval(project_id))

        milestone = cls(services)
        milestone.set_record_value("post_title", sanitize_text_field(name))
        milestone.set_record_value("post_author", intval(created_by))
        if project is not None:
            milestone.set_field("project_id", project.id)
        return milestone

    @classmethod
    def by_id(cls, services: "Services", milestone_id: int) -> "Milestone":
        return cls.load(services, intval(milestone_id))

    @classmethod
    def by_legacy_id(cls, services: "Services", legacy_id: str) -> "Milestone":
        """Find a live milestone by the identifier it had in the old architecture."""

        cleaned = sanitize_text_field(legacy_id)
        if not cleaned:
            raise NotFound("Milestone not found")
        ids = services.meta.find_post_ids(cls.META_LEGACY_ID, cleaned, post_type=cls.POST_TYPE)
        if not ids:
            raise NotFound("Milestone not found")
        return cls.load(services, ids[0])

    # ---- lifecycle

    @property
    def state(self) -> MilestoneState:
        if self.is_new:
            return MilestoneState.UNSAVED
        if self.post.is_trashed:
            return MilestoneState.TRASHED
        return MilestoneState.PERSISTED

    def store(self) -> "Milestone":
        if self.state is MilestoneState.TRASHED:
            raise ValidationError("A trashed milestone cannot be saved")
        super().store()
        if self._category_ids is not None:
            self._store_categories(self._category_ids)
        return self

    # ---- record-backed fields

    def get_id(self) -> int | None:
        return self.id

    def get_name(self) -> str:
        return self.get_record_value("post_title", "")

    def set_name(self, new_name: str) -> "Milestone":
        self.set_record_value("post_title", sanitize_text_field(new_name))
        return self

    def get_notes(self) -> str:
        return self.get_record_value("post_content", "") or ""

    def set_notes(self, notes: str | None) -> "Milestone":
        self.set_record_value("post_content", sanitize_textarea_field(notes))
        return self

    def get_created_by(self) -> int:
        return intval(self.get_record_value("post_author", 0))

    def get_created_on(self, fmt: str = dates.FORMAT_MYSQL) -> Any:
        if self.is_new:
            return dates.format_date(None, fmt)
        return dates.format_date(dates.to_mysql_date(self.post.post_date), fmt)

    # ---- meta-backed fields

    def get_project_id(self) -> int:
        return self.get_field("project_id")

    def set_project_id(self, project_id: int) -> "Milestone":
        self.set_field("project_id", intval(project_id))
        return self

    def get_assigned_to(self) -> list[int]:
        return list(self.get_field("assigned_to") or [])

    def set_assigned_to(self, assigned_to: Any) -> "Milestone":
        if not isinstance(assigned_to, (list, tuple, set)):
            assigned_to = []
        self.set_field("assigned_to", sanitize_ids(assigned_to))
        return self

    def get_start_date(self, fmt: str = dates.FORMAT_MYSQL) -> Any:
        return dates.format_date(self.get_field("start_date"), fmt)

    def set_start_date(self, start_date: Any) -> "Milestone":
        self.set_field("start_date", dates.to_mysql_date(start_date))
        return self

    def get_end_date(self, fmt: str = dates.FORMAT_MYSQL) -> Any:
        return dates.format_date(self.get_field("end_date"), fmt)

    def set_end_date(self, end_date: Any) -> "Milestone":
        self.set_field("end_date", dates.to_mysql_date(end_date))
        return self

    def get_order(self) -> int:
        return self.get_field("order")

    def set_order(self, order: Any) -> "Milestone":
        self.set_field("order", intval(order))
        return self

    def get_progress(self) -> float:
        return float(self.get_field("progress") or 0.0)

    @staticmethod
    def validate_progress(progress: Any) -> float:
        if isinstance(progress, bool):
            raise ValidationError("Progress must be a number")
        try:
            value = float(progress)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Progress must be a number, got {progress!r}") from exc
        if not math.isfinite(value) or value < 0:
            raise ValidationError("Progress must be a non-negative number")
        return value

    def set_progress(self, progress: Any) -> "Milestone":
        self.set_field("progress", self.validate_progress(progress))
        return self

    def get_color(self) -> str | None:
        return self.get_field("color")

    def set_color(self, color: str | None) -> "Milestone":
        self.set_field("color", sanitize_text_field(color) or None)
        return self

    # ---- legacy / compatibility fields

    def get_legacy_id(self) -> str | None:
        return self.get_field("legacy_id")

    def set_legacy_id(self, legacy_id: str | None) -> "Milestone":
        self.set_field("legacy_id", sanitize_text_field(legacy_id) or None)
        return self

    def get_legacy_milestone_code(self) -> str | None:
        return self.get_field("legacy_milestone_code")

    def set_legacy_milestone_code(self, code: str | None) -> "Milestone":
        self.set_field("legacy_milestone_code", sanitize_text_field(code) or None)
        return self

    def get_created_time_in_utc(self) -> bool | None:
        return self.get_field("created_time_in_utc")

    def set_created_time_in_utc(self, value: Any) -> "Milestone":
        self.set_field("created_time_in_utc", _as_bool(sanitize_text_field(value)))
        return self

    def get_task_count(self) -> int | None:
        return self.get_field("task_count")

    def set_task_count(self, count: Any) -> "Milestone":
        self.set_field("task_count", intval(sanitize_text_field(count)))
        return self

    def get_task_open(self) -> int | None:
        return self.get_field("task_open")

    def set_task_open(self, count: Any) -> "Milestone":
        self.set_field("task_open", intval(sanitize_text_field(count)))
        return self

    # ---- categories

    def get_category_ids(self) -> list[int]:
        if settings.DISABLE_MILESTONE_CATEGORIES:
            return []
        if self._category_ids is None:
            self._category_ids = (
                [] if self.is_new else self._services.terms.get_object_term_ids(self._id, self.CATEGORY_TAXONOMY)
            )
        return list(self._category_ids)

    def set_category_ids(self, category_ids: Any) -> "Milestone":
        if settings.DISABLE_MILESTONE_CATEGORIES:
            return self
        cleaned = self._services.terms.validate_term_ids(category_ids, self.CATEGORY_TAXONOMY)
        self._category_ids = cleaned
        if not self.is_new:
            self._store_categories(cleaned)
        return self

    def _store_categories(self, category_ids: list[int]) -> None:
        if settings.DISABLE_MILESTONE_CATEGORIES:
            return
        self._services.terms.set_object_terms(self._id, category_ids, self.CATEGORY_TAXONOMY)

    # ---- exports

    def convert_to_legacy_rowset(self) -> dict[str, Any]:
        """Flatten the milestone into the row shape older reports expect."""

        assignees = self.get_assigned_to()
        row: dict[str, Any] = {
            "id": self.get_id(),
            "milestone": self.get_name(),
            "milestone_order": self.get_order(),
            "created_by": self.get_created_by(),
            "created_time": self.get_created_on(dates.FORMAT_UNIX),
            "assigned_to": assignees,
            "progress": self.get_progress(),
            "notes": self.get_notes(),
            "start_date": self.get_start_date(dates.FORMAT_UNIX),
            "end_date": self.get_end_date(dates.FORMAT_UNIX),
            "task_count": self.get_task_count(),
            "task_open": self.get_task_open(),
        }
        if assignees:
            # Display names keep the legacy "assigned to" column sortable.
            row["assigned_to_order"] = self._services.users.display_names(assignees)
        return row

    # ---- removal

    def delete(self, user_id: int | None = None) -> None:
        """Trash the milestone, unlink its tasks and log the removal atomically.

        Raises ``TransactionFailure`` after rolling back if any step fails.
        """

        if self.state is not MilestoneState.PERSISTED:
            raise NotFound("Milestone not found")

        services = self._services
        try:
            with services.tx.atomic():
                project_id = self.get_project_id()
                self._unlink_tasks(project_id)
                snapshot = self.convert_to_legacy_rowset()
                self._post = services.records.trash(self._id)
                services.activity.record(project_id, self.ACTIVITY_SUBJECT, ACTION_REMOVE, snapshot, user_id=user_id)
        except Exception:
            self.refresh()
            logger.exception("milestone.delete_failed", extra={"extra_data": {"milestone_id": self._id}})
            raise
        logger.info(
            "milestone.deleted",
            extra={"extra_data": {"milestone_id": self._id, "project_id": project_id}},
        )

    def _unlink_tasks(self, project_id: int) -> None:
        if not project_id:
            return
        self._services.tasks.unlink_milestone(project_id, self._id)

    def __repr__(self) -> str:
        return f"<Milestone id={self._id}>"
