"""Core API types shared by resource stores, formatters and schema registries."""

from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

CREATE_EVENT = "resource.create"
CHANGE_EVENT = "resource.change"
REMOVE_EVENT = "resource.remove"

ALL = "*"


@dataclass(frozen=True)
class GroupVersionKind:
    """Identifies a kind within an API group and version."""

    group: str = ""
    version: str = ""
    kind: str = ""

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


@dataclass(frozen=True)
class GroupVersionResource:
    """Identifies a resource within an API group and version."""

    group: str = ""
    version: str = ""
    resource: str = ""


@dataclass(frozen=True)
class Access:
    """A grant over a namespace and a resource name; "*" matches anything."""

    namespace: str = ALL
    resource_name: str = ALL


class AccessListByVerb(dict):
    """Maps a verb such as "list" or "watch" to the grants that allow it."""

    def grants(self, verb: str, namespace: str, name: str) -> bool:
        return any(
            access.namespace in (ALL, namespace)
            and access.resource_name in (ALL, name)
            for access in self.get(verb, ())
        )


@dataclass
class APIObject:
    """A typed object as served by the API."""

    type: str = ""
    id: str = ""
    object: Any = None

    def data(self) -> dict:
        """Return the object as a mapping; dict-backed objects are returned as is."""
        obj = self.object
        if isinstance(obj, dict):
            return obj
        to_dict = getattr(obj, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        return {}


@dataclass
class APIObjectList:
    """A page of API objects."""

    objects: list[APIObject] = field(default_factory=list)
    revision: str = ""
    continue_token: str = ""


@dataclass
class APIEvent:
    """A change notification sent to watchers."""

    name: str = ""
    resource_type: str = ""
    id: str = ""
    object: Optional[APIObject] = None
    error: Optional[Exception] = None
    revision: str = ""


@dataclass
class APISchema:
    """Describes one resource type: its methods, attributes, store and formatter."""

    id: str = ""
    plural_name: str = ""
    collection_methods: list[str] = field(default_factory=list)
    resource_methods: list[str] = field(default_factory=list)
    resource_fields: dict[str, Any] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)
    resource_actions: dict[str, Any] = field(default_factory=dict)
    action_handlers: dict[str, Any] = field(default_factory=dict)
    store: Any = None
    formatter: Optional[Callable[..., None]] = None

    def copy(self) -> "APISchema":
        """Return a copy whose methods, fields and attributes are independent."""
        return dataclasses.replace(
            self,
            collection_methods=list(self.collection_methods),
            resource_methods=list(self.resource_methods),
            resource_fields=copy.deepcopy(self.resource_fields),
            attributes=copy.deepcopy(self.attributes),
            resource_actions=copy.deepcopy(self.resource_actions),
            action_handlers=dict(self.action_handlers),
        )


def _guess_plural(name: str) -> str:
    if name.endswith(("s", "ch", "x", "sh")):
        return name + "es"
    if name.endswith("y") and len(name) > 1 and name[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


@dataclass
class APISchemas:
    """A collection of schemas keyed by id."""

    schemas: dict[str, APISchema] = field(default_factory=dict)

    def add_schema(self, schema: APISchema) -> APISchema:
        """Store a copy of the schema, filling in its plural name, and return it."""
        if not schema.id:
            raise ValueError("schema id is required")
        stored = schema.copy()
        if not stored.plural_name:
            stored.plural_name = _guess_plural(stored.id)
        self.schemas[stored.id] = stored
        return stored

    def lookup_schema(self, schema_id: str) -> Optional[APISchema]:
        """Find a schema by id, falling back to a case-insensitive id or plural match."""
        found = self.schemas.get(schema_id)
        if found is not None:
            return found
        wanted = schema_id.lower()
        for schema in self.schemas.values():
            if schema.id.lower() == wanted or schema.plural_name.lower() == wanted:
                return schema
        return None

    def __iter__(self) -> Iterator[APISchema]:
        return iter(list(self.schemas.values()))

    def __len__(self) -> int:
        return len(self.schemas)


@dataclass
class APIRequest:
    """The parts of an incoming API request that stores and formatters use."""

    schemas: APISchemas = field(default_factory=APISchemas)
    query: dict[str, list[str]] = field(default_factory=dict)
    namespace: str = ""
    name: str = ""
    type: str = ""
    user: Any = None
    access_control: Any = None