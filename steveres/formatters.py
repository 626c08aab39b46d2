"""Formatters that adjust resources before they are served."""

from __future__ import annotations

from typing import Any

from .apitypes import APIObject, APIRequest
from .datapath import get_value, put_value, remove_value


def lower_title(text: str) -> str:
    """Lower the leading run of capitals, keeping the capital that starts the next word."""
    chars = list(text)
    for i, ch in enumerate(chars):
        is_last = i == len(chars) - 1
        if ch.isupper() and (i == 0 or is_last or chars[i + 1].isupper()):
            chars[i] = ch.lower()
        else:
            break
    return "".join(chars)


def _string(data: dict, *keys: str) -> str:
    try:
        value: Any = get_value(data, *keys)
    except KeyError:
        return ""
    return "" if value is None else str(value)


def drop_helm_data(request: APIRequest, resource: APIObject) -> None:
    """Remove the release payload from objects owned by Helm or Tiller."""
    data = resource.data()
    if (
        _string(data, "metadata", "labels", "owner") == "helm"
        or _string(data, "metadata", "labels", "OWNER") == "TILLER"
    ):
        if _string(data, "data", "release"):
            remove_value(data, "data", "release")


def pod(request: APIRequest, resource: APIObject) -> None:
    """Use the pod's status column as its state name."""
    data = resource.data()
    try:
        fields = get_value(data, "metadata", "fields")
    except KeyError:
        return
    if isinstance(fields, (list, tuple)) and len(fields) > 2:
        put_value(data, lower_title(str(fields[2])), "metadata", "state", "name")