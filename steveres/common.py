"""Self links and field filtering applied to served resources."""

from __future__ import annotations

from .apitypes import APIRequest, GroupVersionResource
from .datapath import get_value, put_value, remove_value

MANAGEMENT_GROUP = "management.cattle.io"


def self_link(gvr: GroupVersionResource, name: str, namespace: str = "") -> str:
    """Build the API path of a named object of the given resource."""
    if gvr.group == MANAGEMENT_GROUP and gvr.version == "v3":
        link = f"/v1/{gvr.group}.{gvr.resource}"
        if namespace:
            link += f"/{namespace}"
    else:
        prefix = f"/apis/{gvr.group}/{gvr.version}/" if gvr.group else "/api/v1/"
        scope = f"namespaces/{namespace}/" if namespace else ""
        link = f"{prefix}{scope}{gvr.resource}"
    return f"{link}/{name}"


def include_fields(request: APIRequest, obj: dict) -> None:
    """Keep only the dotted paths named by the "include" query parameter."""
    fields = request.query.get("include")
    if fields is None:
        return
    selected: dict = {}
    for dotted in fields:
        path = dotted.split(".")
        try:
            value = get_value(obj, *path)
        except KeyError:
            continue
        put_value(selected, value, *path)
    obj.clear()
    obj.update(selected)


def exclude_fields(request: APIRequest, obj: dict) -> None:
    """Drop the dotted paths named by the "exclude" query parameter."""
    for dotted in request.query.get("exclude", ()):
        remove_value(obj, *dotted.split("."))


def exclude_values(request: APIRequest, obj: dict) -> None:
    """Blank every value of the maps named by the "excludeValues" query parameter."""
    for dotted in request.query.get("excludeValues", ()):
        path = dotted.split(".")
        try:
            target = get_value(obj, *path)
        except KeyError:
            continue
        if isinstance(target, dict):
            for key in list(target):
                put_value(obj, "", *path, key)