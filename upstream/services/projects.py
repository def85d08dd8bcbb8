"""Project lookup and the per-project task collection.

Tasks still live in the legacy layout: one loosely typed collection stored
under a single meta key on the project record.
"""

from __future__ import annotations

from typing import Any, Iterator

from ..core.errors import NotFound
from ..core.sanitize import sanitize_text_field
from ..models.post import Post
from .metadata import MetadataStore
from .records import RecordStore

PROJECT_POST_TYPE = "project"
META_PROJECT_TASKS = "_upstream_project_tasks"


class ProjectLookup:
    def __init__(self, records: RecordStore) -> None:
        self.records = records

    def get_project_by_id(self, project_id: int | None) -> Post:
        post = self.records.get(project_id)
        if post is None or post.post_type != PROJECT_POST_TYPE or post.is_trashed:
            raise NotFound(f"Project {project_id} not found")
        return post

    def create(self, title: str, author_id: int = 0) -> Post:
        return self.records.insert(
            PROJECT_POST_TYPE,
            title=sanitize_text_field(title),
            author_id=author_id,
        )

    def touch(self, project_id: int) -> None:
        """Bump the project's modified stamp without re-entering save hooks."""

        project = self.get_project_by_id(project_id)
        self.records.update(project.id, internal=True)


class TaskCollection:
    """The project's task aggregate, kept in whatever shape it was stored in.

    Entries are usually dicts inside a list, but keyed collections (a JSON
    object) and stray non-dict entries occur in older data and must survive
    every write.
    """

    def __init__(self, meta: MetadataStore) -> None:
        self.meta = meta

    def get_tasks_for_project(self, project_id: int) -> Any:
        stored = self.meta.get(project_id, META_PROJECT_TASKS, single=True)
        return [] if stored is None else stored

    def save_tasks_for_project(self, project_id: int, tasks: Any) -> None:
        self.meta.set(project_id, META_PROJECT_TASKS, tasks)

    @staticmethod
    def task_entries(tasks: Any) -> Iterator[dict[str, Any]]:
        """Yield the dict entries of a list or keyed collection; other entries are skipped."""

        if isinstance(tasks, dict):
            items = tasks.values()
        elif isinstance(tasks, list):
            items = tasks
        else:
            return
        for task in items:
            if isinstance(task, dict):
                yield task

    def unlink_milestone(self, project_id: int, milestone_id: int) -> int:
        """Clear every task reference to ``milestone_id``. Returns how many were cleared.

        Only the ``milestone`` field of matching entries changes; the collection
        is written back with every other entry untouched.
        """

        tasks = self.get_tasks_for_project(project_id)
        cleared = 0
        for task in self.task_entries(tasks):
            linked = task.get("milestone")
            if linked not in (None, "") and str(linked) == str(milestone_id):
                task["milestone"] = ""
                cleared += 1
        if cleared:
            self.save_tasks_for_project(project_id, tasks)
        return cleared
