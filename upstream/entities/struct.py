"""Generic mapping between an in-memory entity and a post plus its metadata.

A concrete entity declares ``POST_TYPE`` and a ``FIELDS`` table of
:class:`MetaField` descriptors. Field values are fetched lazily on first read
and kept in a :class:`Cached` slot, so "never loaded" and "loaded but empty"
stay distinct. Once the entity is persisted every write goes straight to the
store; on an unsaved entity writes wait for :meth:`PostObject.store`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Generic, Mapping, TypeVar

from ..core.errors import NotFound
from ..models.post import Post

if TYPE_CHECKING:
    from ..services.container import Services

T = TypeVar("T")

_MISSING: Any = object()

RECORD_COLUMNS = ("post_title", "post_content", "post_author")


class Cached(Generic[T]):
    """One lazily populated value."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value = _MISSING

    @property
    def loaded(self) -> bool:
        return self._value is not _MISSING

    def get(self) -> T:
        if self._value is _MISSING:
            raise LookupError("value has not been loaded")
        return self._value

    def set(self, value: T) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = _MISSING


@dataclass(frozen=True)
class MetaField:
    """Binds an entity attribute to a metadata key.

    ``load`` coerces each raw stored value on read. ``mirror_keys`` are extra
    keys that always receive a copy of the value (legacy query columns).
    """

    key: str
    repeated: bool = False
    load: Callable[[Any], Any] | None = None
    default: Any = None
    mirror_keys: tuple[str, ...] = ()

    def coerce(self, raw: Any) -> Any:
        if self.repeated:
            values = raw if isinstance(raw, list) else ([] if raw is None else [raw])
            return [self.load(value) for value in values] if self.load else list(values)
        if raw is None or raw == "":
            return self.default
        return self.load(raw) if self.load else raw


class PostObject:
    POST_TYPE: ClassVar[str] = ""
    FIELDS: ClassVar[Mapping[str, MetaField]] = {}

    def __init__(self, services: "Services", post_id: int | None = None, post: Post | None = None) -> None:
        if post is not None and post.post_type != self.POST_TYPE:
            raise NotFound(f"Record {post.id} is not a {self.POST_TYPE}")
        self._services = services
        self._id: int | None = (post.id if post is not None else post_id) or None
        self._post = post
        self._cache: dict[str, Cached[Any]] = {name: Cached() for name in self.FIELDS}
        self._pending_fields: set[str] = set()
        self._pending_record: dict[str, Any] = {}

    @classmethod
    def load(cls, services: "Services", post_id: int):
        post = services.records.get(post_id)
        if post is None or post.post_type != cls.POST_TYPE:
            raise NotFound(f"{cls.__name__} {post_id} not found")
        return cls(services, post=post)

    @property
    def id(self) -> int | None:
        return self._id

    @property
    def is_new(self) -> bool:
        return self._id is None

    @property
    def post(self) -> Post:
        if self._post is None:
            if self._id is None:
                raise NotFound(f"{self.__class__.__name__} has not been stored yet")
            self._post = self._services.records.require(self._id, self.POST_TYPE)
        return self._post

    def _field(self, name: str) -> MetaField:
        try:
            return self.FIELDS[name]
        except KeyError:
            raise AttributeError(f"{self.__class__.__name__} has no field {name!r}") from None

    def get_field(self, name: str) -> Any:
        field = self._field(name)
        cached = self._cache[name]
        if not cached.loaded:
            raw = None if self.is_new else self._services.meta.get(self._id, field.key, single=not field.repeated)
            cached.set(field.coerce(raw))
        return cached.get()

    def set_field(self, name: str, value: Any) -> None:
        field = self._field(name)
        self._cache[name].set(value)
        if self.is_new:
            self._pending_fields.add(name)
            return
        self._write_field(field, value)

    def _write_field(self, field: MetaField, value: Any) -> None:
        meta = self._services.meta
        if field.repeated:
            meta.replace_all(self._id, field.key, value or [])
            return
        for key in (field.key, *field.mirror_keys):
            if value is None:
                meta.delete(self._id, key)
            else:
                meta.set(self._id, key, value)

    def get_record_value(self, column: str, default: Any = None) -> Any:
        if self.is_new:
            return self._pending_record.get(column, default)
        return getattr(self.post, column)

    def set_record_value(self, column: str, value: Any) -> None:
        """Write a record column through the internal path (no save hooks)."""

        if column not in RECORD_COLUMNS:
            raise AttributeError(f"{column!r} is not a record column")
        if self.is_new:
            self._pending_record[column] = value
            return
        self._post = self._services.records.update(self._id, internal=True, **{column: value})

    def store(self):
        """Persist the entity.

        A new entity gets its record inserted and every pending field written.
        A persisted one rewrites its loaded fields and then saves the record
        through the normal path, which notifies save hooks.
        """

        records = self._services.records
        if self.is_new:
            self._post = records.insert(
                self.POST_TYPE,
                title=self._pending_record.get("post_title", ""),
                content=self._pending_record.get("post_content", ""),
                author_id=self._pending_record.get("post_author", 0),
            )
            self._id = self._post.id
            for name in sorted(self._pending_fields):
                self._write_field(self.FIELDS[name], self._cache[name].get())
            self._pending_fields.clear()
            self._pending_record.clear()
            records.hooks.fire(self._post)
            return self

        for name, cached in self._cache.items():
            if cached.loaded:
                self._write_field(self.FIELDS[name], cached.get())
        self._post = records.update(
            self._id,
            post_title=self.post.post_title,
            post_content=self.post.post_content,
        )
        return self

    def refresh(self) -> None:
        """Forget cached values so the next read goes back to the store."""

        for cached in self._cache.values():
            cached.clear()
        if self._id is not None:
            self._post = None
