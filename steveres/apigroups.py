"""The read-only "apigroup" resource listing the API groups a server offers."""

from __future__ import annotations

from typing import Any, Optional

from .apitypes import APIObject, APIObjectList, APIRequest, APISchema
from .registry import Template


class APIGroupStore:
    """Lists API groups from a discovery client that provides server_groups().

    Each group is a mapping with at least a "name"; the unnamed group is "core".
    """

    def __init__(self, discovery: Any):
        self.discovery = discovery

    def list(self, request: APIRequest, schema: Optional[APISchema]) -> APIObjectList:
        schema_id = schema.id if schema is not None else ""
        objects = []
        for group in self.discovery.server_groups():
            item = dict(group)
            if not item.get("name"):
                item["name"] = "core"
            objects.append(APIObject(type=schema_id, id=item["name"], object=item))
        return APIObjectList(objects=objects)

    def by_id(self, request: APIRequest, schema: Optional[APISchema], id: str) -> APIObject:
        """Find a group by name; raise LookupError if there is none."""
        for obj in self.list(request, schema).objects:
            if obj.id == id:
                return obj
        raise LookupError(f"api group {id!r} not found")


def _read_only(schema: APISchema) -> None:
    schema.collection_methods = ["GET"]
    schema.resource_methods = ["GET"]


def _format(request: APIRequest, resource: APIObject) -> None:
    name = resource.data().get("name")
    resource.id = "" if name is None else str(name)


def template(discovery: Any) -> Template:
    """The schema template of the "apigroup" resource."""
    return Template(
        id="apigroup",
        customize=_read_only,
        formatter=_format,
        store=APIGroupStore(discovery),
    )