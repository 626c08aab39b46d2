"""Per-type object counts, served as a pseudo-resource and streamed to watchers."""

from __future__ import annotations

import asyncio
import dataclasses
import re
import threading
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional

from .apitypes import (
    CHANGE_EVENT,
    Access,
    AccessListByVerb,
    APIEvent,
    APIObject,
    APIObjectList,
    APIRequest,
    APISchema,
    APISchemas,
    GroupVersionKind,
)

DEBOUNCE_SECONDS = 5.0
"""How long changed counts are held before being sent to a watcher."""

IGNORED_SCHEMAS = frozenset({"count", "schema", "apiRoot"})

_REVISION = re.compile(r"[+-]?\d+")


@dataclass
class ObjectInfo:
    """The metadata and summarized state of one object held by the cluster cache."""

    gvk: GroupVersionKind = field(default_factory=GroupVersionKind)
    name: str = ""
    namespace: str = ""
    resource_version: str = ""
    state: str = ""
    error: bool = False
    transitioning: bool = False

    @property
    def revision(self) -> Optional[int]:
        """The resource version as an integer, or None when it is not one."""
        if _REVISION.fullmatch(self.resource_version):
            return int(self.resource_version)
        return None


def simple_state(info: ObjectInfo) -> str:
    """Reduce an object's state to "error", "in-progress" or ""."""
    if info.error:
        return "error"
    if info.transitioning:
        return "in-progress"
    return ""


@dataclass
class Summary:
    """Totals over a set of objects."""

    count: int = 0
    states: dict[str, int] = field(default_factory=dict)
    errors: int = 0
    transitioning: int = 0

    def copy(self) -> "Summary":
        return dataclasses.replace(self, states=dict(self.states))

    def shifted(self, info: ObjectInfo, delta: int) -> "Summary":
        """Return a copy with one object added (delta 1) or removed (delta -1)."""
        result = self.copy()
        result.count += delta
        if info.transitioning:
            result.transitioning += delta
        if info.error:
            result.errors += delta
        state = simple_state(info)
        if state:
            result.states[state] = result.states.get(state, 0) + delta
        return result

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.count:
            out["count"] = self.count
        if self.states:
            out["states"] = dict(self.states)
        if self.errors:
            out["errors"] = self.errors
        if self.transitioning:
            out["transitioning"] = self.transitioning
        return out


@dataclass
class ItemCount:
    """Counts for one resource type, overall and per namespace."""

    summary: Summary = field(default_factory=Summary)
    namespaces: dict[str, Summary] = field(default_factory=dict)
    revision: int = 0

    def copy(self) -> "ItemCount":
        return ItemCount(
            summary=self.summary.copy(),
            namespaces={ns: s.copy() for ns, s in self.namespaces.items()},
            revision=self.revision,
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"summary": self.summary.to_dict()}
        if self.namespaces:
            out["namespaces"] = {ns: s.to_dict() for ns, s in self.namespaces.items()}
        return out


@dataclass
class Count:
    """Item counts keyed by schema id."""

    id: str = ""
    counts: dict[str, ItemCount] = field(default_factory=dict)

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.id:
            out["id"] = self.id
        out["counts"] = {key: item.to_dict() for key, item in self.counts.items()}
        return out


def _shift_in_place(item_count: ItemCount, namespace: str, info: ObjectInfo, delta: int) -> None:
    item_count.summary = item_count.summary.shifted(info, delta)
    if namespace:
        current = item_count.namespaces.get(namespace, Summary())
        item_count.namespaces[namespace] = current.shifted(info, delta)


def add_counts(item_count: ItemCount, namespace: str, info: ObjectInfo) -> ItemCount:
    """Return a copy of the counts with the object added."""
    result = item_count.copy()
    _shift_in_place(result, namespace, info, 1)
    return result


def remove_counts(item_count: ItemCount, namespace: str, info: ObjectInfo) -> ItemCount:
    """Return a copy of the counts with the object removed."""
    result = item_count.copy()
    _shift_in_place(result, namespace, info, -1)
    return result


def to_api_object(count: Count) -> APIObject:
    return APIObject(type="count", id=count.id, object=count)


def to_api_event(count: Count) -> APIEvent:
    """Wrap a count in a change event for the "counts" resource type."""
    return APIEvent(name=CHANGE_EVENT, resource_type="counts", object=to_api_object(count))


async def _next_item(iterator: AsyncIterator[Count]) -> Count:
    return await iterator.__anext__()


async def debounce_counts(
    source: AsyncIterable[Count], debounce: float = DEBOUNCE_SECONDS
) -> AsyncIterator[APIEvent]:
    """Yield the first count at once, then merged changes at most once per period.

    Counts received between ticks are merged, later values for a schema id
    replacing earlier ones. The stream ends when the source ends; anything
    still pending is dropped.
    """
    loop = asyncio.get_running_loop()
    next_tick = loop.time() + debounce
    iterator = source.__aiter__()
    pending: Optional[Count] = None
    next_item: Optional[asyncio.Task] = None
    try:
        try:
            first = await iterator.__anext__()
        except StopAsyncIteration:
            return
        yield to_api_event(first)

        next_item = asyncio.ensure_future(_next_item(iterator))
        while True:
            timeout = max(0.0, next_tick - loop.time())
            done, _ = await asyncio.wait({next_item}, timeout=timeout)
            if next_item in done:
                try:
                    count = next_item.result()
                except StopAsyncIteration:
                    return
                if pending is None:
                    pending = Count(id=count.id, counts=dict(count.counts))
                else:
                    pending.counts.update(count.counts)
                next_item = asyncio.ensure_future(_next_item(iterator))
                continue
            now = loop.time()
            while next_tick <= now:
                next_tick += debounce
            if pending is not None:
                ready, pending = pending, None
                yield to_api_event(ready)
    finally:
        if next_item is not None and not next_item.done():
            next_item.cancel()


def _schema_gvk(schema: APISchema) -> GroupVersionKind:
    attrs = schema.attributes
    return GroupVersionKind(
        group=str(attrs.get("group", "") or ""),
        version=str(attrs.get("version", "") or ""),
        kind=str(attrs.get("kind", "") or ""),
    )


def _schema_access(schema: APISchema) -> AccessListByVerb:
    access = schema.attributes.get("access")
    return access if isinstance(access, AccessListByVerb) else AccessListByVerb()


def _parse(obj: Any) -> Optional[tuple[ObjectInfo, int]]:
    if not isinstance(obj, ObjectInfo):
        return None
    revision = obj.revision
    if revision is None:
        return None
    return obj, revision


class _CountWatch:
    """An async stream of count events that stops its handlers when closed."""

    def __init__(self, events: AsyncIterator[APIEvent], stop: Callable[[], None]):
        self._events = events
        self._stop = stop

    def __aiter__(self) -> "_CountWatch":
        return self

    async def __anext__(self) -> APIEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        self._stop()
        await self._events.aclose()

    async def __aenter__(self) -> "_CountWatch":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class CountStore:
    """Serves counts of the objects in a cluster cache, per schema the caller may see.

    The cluster cache provides list(gvk) and on_add/on_change/on_remove(handler);
    a handler registration may return a callable that unregisters it.
    An access control, when present on the request, raises PermissionError
    from can_list or can_watch to deny a schema.
    """

    def __init__(self, cluster_cache: Any, debounce: float = DEBOUNCE_SECONDS):
        self.cluster_cache = cluster_cache
        self.debounce = debounce

    def _schemas_to_watch(self, request: APIRequest) -> list[APISchema]:
        selected = []
        for schema in request.schemas:
            if schema.id in IGNORED_SCHEMAS or schema.store is None:
                continue
            control = request.access_control
            if control is not None:
                try:
                    control.can_list(request, schema)
                    control.can_watch(request, schema)
                except PermissionError:
                    continue
            selected.append(schema)
        return selected

    def get_count(self, request: APIRequest) -> Count:
        """Count the visible objects of every schema the request may list and watch."""
        counts: dict[str, ItemCount] = {}
        for schema in self._schemas_to_watch(request):
            access = _schema_access(schema)
            every = access.grants("list", "*", "*")
            item_count = ItemCount()
            revision = 0
            for obj in self.cluster_cache.list(_schema_gvk(schema)):
                parsed = _parse(obj)
                if parsed is None:
                    continue
                info, obj_revision = parsed
                if (
                    not every
                    and not access.grants("list", info.namespace, info.name)
                    and not access.grants("get", info.namespace, info.name)
                ):
                    continue
                revision = max(revision, obj_revision)
                _shift_in_place(item_count, info.namespace, info, 1)
            item_count.revision = revision
            counts[schema.id] = item_count
        return Count(id="count", counts=counts)

    def by_id(self, request: APIRequest, schema: Optional[APISchema], id: str) -> APIObject:
        return to_api_object(self.get_count(request))

    def list(self, request: APIRequest, schema: Optional[APISchema]) -> APIObjectList:
        return APIObjectList(objects=[to_api_object(self.get_count(request))])

    def watch(self, request: APIRequest, schema: Optional[APISchema] = None) -> _CountWatch:
        """Stream the counts that change after the watch starts; needs a running loop."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        lock = threading.Lock()
        is_open = True

        counts = self.get_count(request).counts
        gvk_to_schema: dict[GroupVersionKind, APISchema] = {}
        for schema_id in counts:
            found = request.schemas.lookup_schema(schema_id)
            if found is not None:
                gvk_to_schema[_schema_gvk(found)] = found

        def on_change(add: bool, gvk: GroupVersionKind, obj: Any, old_obj: Any) -> None:
            with lock:
                if not is_open:
                    return
                target = gvk_to_schema.get(gvk)
                if target is None:
                    return
                parsed = _parse(obj)
                if parsed is None:
                    return
                info, revision = parsed
                item_count = counts.get(target.id, ItemCount())
                if revision <= item_count.revision:
                    return
                if old_obj is not None:
                    old_parsed = _parse(old_obj)
                    if old_parsed is None:
                        return
                    old_info = old_parsed[0]
                    if (
                        old_info.transitioning == info.transitioning
                        and old_info.error == info.error
                        and simple_state(old_info) == simple_state(info)
                    ):
                        return
                    item_count = remove_counts(item_count, info.namespace, old_info)
                    _shift_in_place(item_count, info.namespace, info, 1)
                elif add:
                    item_count = add_counts(item_count, info.namespace, info)
                else:
                    item_count = remove_counts(item_count, info.namespace, info)
                counts[target.id] = item_count
                changed = Count(id="count", counts={target.id: item_count.copy()})
                loop.call_soon_threadsafe(queue.put_nowait, changed)

        unregisters = [
            self.cluster_cache.on_add(lambda gvk, key, obj: on_change(True, gvk, obj, None)),
            self.cluster_cache.on_change(
                lambda gvk, key, obj, old_obj: on_change(True, gvk, obj, old_obj)
            ),
            self.cluster_cache.on_remove(lambda gvk, key, obj: on_change(False, gvk, obj, None)),
        ]

        def stop() -> None:
            nonlocal is_open
            with lock:
                if not is_open:
                    return
                is_open = False
            queue.put_nowait(None)
            for unregister in unregisters:
                if callable(unregister):
                    unregister()

        async def drain() -> AsyncIterator[Count]:
            while True:
                item = await queue.get()
                if item is None:
                    return
                yield item

        return _CountWatch(debounce_counts(drain(), self.debounce), stop)


def register(schemas: APISchemas, cluster_cache: Any) -> APISchema:
    """Add the "count" schema, backed by a CountStore over the cluster cache."""
    schema = APISchema(
        id="count",
        collection_methods=["GET"],
        resource_methods=["GET"],
        resource_fields={
            "id": {"type": "string"},
            "counts": {"type": "map[json]"},
        },
        attributes={"access": AccessListByVerb({"watch": [Access("*", "*")]})},
        store=CountStore(cluster_cache),
    )
    return schemas.add_schema(schema)