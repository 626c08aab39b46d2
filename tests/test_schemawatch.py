import asyncio
from dataclasses import dataclass

import pytest

from steveres.apitypes import (
    CHANGE_EVENT,
    CREATE_EVENT,
    REMOVE_EVENT,
    APIRequest,
    APISchema,
    APISchemas,
)
from steveres.schemawatch import SchemaWatchStore, diff_schemas, setup_watcher


@dataclass
class FakeUser:
    name: str = "test"


@dataclass
class FakeAccessSet:
    id: str = ""


class FakeAccessLookup:
    def __init__(self, *ids):
        self.ids = list(ids) or [""]

    def access_for(self, user):
        if len(self.ids) > 1:
            return FakeAccessSet(self.ids.pop(0))
        return FakeAccessSet(self.ids[0])


class FakeFactory:
    def __init__(self, *results):
        self.results = list(results)
        self.callbacks = []
        self.calls = 0

    def schemas(self, user):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def on_change(self, callback):
        self.callbacks.append(callback)

    def fire(self):
        for callback in self.callbacks:
            callback()


def make_schema(schema_id, plural):
    return APISchema(
        id=schema_id,
        plural_name=plural,
        collection_methods=["GET"],
        resource_methods=["GET"],
    )


def collection(*schemas):
    result = APISchemas()
    for schema in schemas:
        result.add_schema(schema)
    return result


def pod():
    return make_schema("pod", "pods")


def secret():
    return make_schema("secret", "secrets")


def test_diff_no_change():
    assert diff_schemas(collection(pod()), collection(pod())) == []


def test_diff_new_schema_added():
    events = diff_schemas(collection(pod()), collection(pod(), secret()))
    assert [(e.name, e.resource_type, e.object.id) for e in events] == [
        (CREATE_EVENT, "schema", "secret")
    ]
    assert events[0].object.object.plural_name == "secrets"


def test_diff_schema_deleted():
    events = diff_schemas(collection(pod(), secret()), collection(pod()))
    assert [(e.name, e.object.id) for e in events] == [(REMOVE_EVENT, "secret")]


def test_diff_empty_schemas():
    assert diff_schemas(APISchemas(), APISchemas()) == []


def test_diff_kind_attribute_updated():
    changed = pod()
    changed.attributes["kind"] = "newKind"
    events = diff_schemas(collection(pod()), collection(changed))
    assert [(e.name, e.object.id) for e in events] == [(CHANGE_EVENT, "pod")]
    assert events[0].object.object.attributes["kind"] == "newKind"


def test_diff_access_attribute_ignored():
    changed = pod()
    changed.attributes["access"] = {"List": "*"}
    assert diff_schemas(collection(pod()), collection(changed)) == []


def test_diff_strips_access_from_objects():
    added = secret()
    added.attributes["access"] = {"List": "*"}
    events = diff_schemas(APISchemas(), collection(added))
    assert "access" not in events[0].object.object.attributes


def test_setup_watcher_registers_schema():
    schemas = APISchemas()
    factory = FakeFactory(APISchemas())
    setup_watcher(schemas, FakeAccessLookup(), factory)
    found = schemas.lookup_schema("schemas")
    assert found.id == "schema"
    assert isinstance(found.store, SchemaWatchStore)
    assert len(factory.callbacks) == 1


@pytest.mark.asyncio
async def test_watch_requires_user():
    schemas = APISchemas()
    setup_watcher(schemas, FakeAccessLookup(), FakeFactory(APISchemas()))
    with pytest.raises(PermissionError):
        schemas.lookup_schema("schemas").store.watch(APIRequest())


@pytest.mark.asyncio
async def test_watch_sends_created_schema_on_change():
    schemas = APISchemas()
    factory = FakeFactory(collection(pod()), collection(pod(), secret()))
    setup_watcher(schemas, FakeAccessLookup(), factory)
    store = schemas.lookup_schema("schemas").store
    async with store.watch(APIRequest(user=FakeUser())) as stream:
        factory.fire()
        event = await asyncio.wait_for(stream.__anext__(), 1.0)
    assert (event.name, event.resource_type, event.object.id) == (
        CREATE_EVENT,
        "schema",
        "secret",
    )


@pytest.mark.asyncio
async def test_watch_sends_nothing_without_changes():
    schemas = APISchemas()
    factory = FakeFactory(collection(pod()), collection(pod()))
    setup_watcher(schemas, FakeAccessLookup(), factory)
    stream = schemas.lookup_schema("schemas").store.watch(APIRequest(user=FakeUser()))
    factory.fire()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(stream.__anext__(), 0.1)
    await stream.aclose()
    assert factory.calls == 2


@pytest.mark.asyncio
async def test_watch_keeps_old_schemas_when_factory_fails():
    factory = FakeFactory(
        collection(pod()), RuntimeError("boom"), collection(pod(), secret())
    )
    store = SchemaWatchStore(FakeAccessLookup(), factory)
    async with store.watch(APIRequest(user=FakeUser())) as stream:
        factory.fire()
        factory.fire()
        event = await asyncio.wait_for(stream.__anext__(), 1.0)
    assert (event.name, event.object.id) == (CREATE_EVENT, "secret")


@pytest.mark.asyncio
async def test_access_set_and_change_signal():
    factory = FakeFactory(
        collection(pod()), collection(pod(), secret()), collection(pod())
    )
    store = SchemaWatchStore(FakeAccessLookup("", "1"), factory, access_interval=0.05)
    async with store.watch(APIRequest(user=FakeUser())) as stream:
        factory.fire()
        first = await asyncio.wait_for(stream.__anext__(), 1.0)
        second = await asyncio.wait_for(stream.__anext__(), 1.0)
    assert [(e.name, e.object.id) for e in (first, second)] == [
        (CREATE_EVENT, "secret"),
        (REMOVE_EVENT, "secret"),
    ]


@pytest.mark.asyncio
async def test_closed_watch_ends_stream():
    factory = FakeFactory(collection(pod()), collection(pod(), secret()))
    store = SchemaWatchStore(FakeAccessLookup(), factory)
    stream = store.watch(APIRequest(user=FakeUser()))
    await stream.aclose()
    factory.fire()
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()