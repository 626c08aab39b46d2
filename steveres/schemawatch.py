"""Streaming of schema changes to watchers as create, change and remove events."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, AsyncIterator, Callable, Optional

from .apitypes import (
    CHANGE_EVENT,
    CREATE_EVENT,
    REMOVE_EVENT,
    APIEvent,
    APIObject,
    APIRequest,
    APISchema,
    APISchemas,
)

log = logging.getLogger(__name__)

ACCESS_POLL_SECONDS = 2.0
"""How often a watcher's access set is checked for changes."""

SCHEMA_TYPE = "schema"


class _Broadcaster:
    """Fans one change signal out to every current subscriber."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback()


def _schema_objects(schemas: APISchemas) -> list[APIObject]:
    """Schemas as API objects, ordered by id, with access information removed."""
    objects = []
    for schema in sorted(schemas, key=lambda s: s.id):
        public = schema.copy()
        public.attributes.pop("access", None)
        objects.append(APIObject(type=SCHEMA_TYPE, id=schema.id, object=public))
    return objects


def _comparable(schema: APISchema) -> tuple:
    attributes = {k: v for k, v in schema.attributes.items() if k != "access"}
    return (
        schema.id,
        schema.plural_name,
        schema.collection_methods,
        schema.resource_methods,
        schema.resource_fields,
        attributes,
        schema.resource_actions,
    )


def diff_schemas(old_schemas: APISchemas, new_schemas: APISchemas) -> list[APIEvent]:
    """Events describing how the new schemas differ from the old ones.

    Created and changed schemas come first, then removed ones. Differences in
    the "access" attribute alone are not reported.
    """
    events: list[APIEvent] = []
    present: set[str] = set()
    for obj in _schema_objects(new_schemas):
        present.add(obj.id)
        old = old_schemas.lookup_schema(obj.id)
        if old is None:
            name = CREATE_EVENT
        elif _comparable(obj.object) == _comparable(old):
            continue
        else:
            name = CHANGE_EVENT
        events.append(APIEvent(name=name, resource_type=SCHEMA_TYPE, object=obj))

    for obj in _schema_objects(old_schemas):
        if obj.id not in present:
            events.append(APIEvent(name=REMOVE_EVENT, resource_type=SCHEMA_TYPE, object=obj))
    return events


class _SchemaWatch:
    """An async stream of schema events that stops its notifications when closed."""

    def __init__(self, events: AsyncIterator[APIEvent], stop: Callable[[], None]):
        self._events = events
        self._stop = stop

    def __aiter__(self) -> "_SchemaWatch":
        return self

    async def __anext__(self) -> APIEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        self._stop()
        await self._events.aclose()

    async def __aenter__(self) -> "_SchemaWatch":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class SchemaWatchStore:
    """Streams changes in the schemas visible to a user.

    The factory provides schemas(user) and on_change(callback); the access
    lookup provides access_for(user), whose result carries an id that changes
    whenever the user's access changes.
    """

    def __init__(
        self,
        access_lookup: Any,
        factory: Any,
        access_interval: float = ACCESS_POLL_SECONDS,
    ):
        self.access_lookup = access_lookup
        self.factory = factory
        self.access_interval = access_interval
        self._notifier = _Broadcaster()
        factory.on_change(self._notifier.notify)

    def _refresh(self, user: Any, old: APISchemas) -> tuple[list[APIEvent], APISchemas]:
        try:
            new = self.factory.schemas(user)
        except Exception as exc:  # keep serving the last good schemas
            log.error("failed to get schemas for %s: %s", user, exc)
            return [], old
        return diff_schemas(old, new), new

    async def _poll_access(self, user: Any, seen: Any, signals: asyncio.Queue) -> None:
        while True:
            await asyncio.sleep(self.access_interval)
            current = self.access_lookup.access_for(user).id
            if current != seen:
                seen = current
                signals.put_nowait(True)

    def watch(self, request: APIRequest, schema: Optional[APISchema] = None) -> _SchemaWatch:
        """Stream schema changes for the request's user; needs a running loop."""
        user = request.user
        if user is None:
            raise PermissionError("unauthorized")

        current = self.factory.schemas(user)
        loop = asyncio.get_running_loop()
        signals: asyncio.Queue = asyncio.Queue()

        def on_schema_change() -> None:
            loop.call_soon_threadsafe(signals.put_nowait, True)

        unsubscribe = self._notifier.subscribe(on_schema_change)
        initial_access = self.access_lookup.access_for(user).id
        poller = loop.create_task(self._poll_access(user, initial_access, signals))
        stopped = False

        def stop() -> None:
            nonlocal stopped
            if stopped:
                return
            stopped = True
            unsubscribe()
            poller.cancel()
            signals.put_nowait(None)

        async def events() -> AsyncIterator[APIEvent]:
            nonlocal current
            try:
                while True:
                    signal = await signals.get()
                    if signal is None:
                        return
                    changes, current = self._refresh(user, current)
                    for event in changes:
                        yield event
            finally:
                stop()

        return _SchemaWatch(events(), stop)


def setup_watcher(schemas: APISchemas, access_lookup: Any, factory: Any) -> APISchema:
    """Add the "schema" schema, whose store streams schema changes to watchers."""
    schema = APISchema(
        id=SCHEMA_TYPE,
        plural_name="schemas",
        collection_methods=["GET"],
        resource_methods=["GET"],
        store=SchemaWatchStore(access_lookup, factory),
    )
    return schemas.add_schema(schema)