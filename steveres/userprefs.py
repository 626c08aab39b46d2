"""User preferences kept in a JSON file in the local configuration directory."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import platformdirs

from .apitypes import APIObject, APIObjectList, APIRequest, APISchema, APISchemas

PREFS_FILE = "prefs.json"
RANCHER_SCHEMA = "management.cattle.io.preference"


def _default_config_dir() -> Path:
    return Path(platformdirs.user_config_dir()) / "steve"


@dataclass
class UserPreference:
    """A user's preference settings, as string keys and values."""

    data: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"data": dict(self.data)}


def _user_name(request: APIRequest) -> str:
    user = request.user
    if user is None:
        return "local"
    return getattr(user, "name", None) or str(user)


class LocalPreferenceStore:
    """Reads and writes one preference document in a configuration directory."""

    def __init__(self, config_dir: Optional[Union[str, os.PathLike]] = None):
        self.config_dir = Path(config_dir) if config_dir is not None else _default_config_dir()

    @property
    def _file(self) -> Path:
        return self.config_dir / PREFS_FILE

    def _read(self) -> dict[str, str]:
        try:
            text = self._file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        document = json.loads(text)
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ValueError("preferences must be a JSON object")
        data = document.get("data")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("preference data must be a JSON object")
        for key, value in data.items():
            if not isinstance(value, str):
                raise ValueError(f"preference {key!r} must be a string")
        return dict(data)

    def _write(self, data: dict) -> None:
        self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        payload = json.dumps(data, separators=(",", ":"), sort_keys=True)
        fd = os.open(self._file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)

    def by_id(self, request: APIRequest, schema: Optional[APISchema], id: str) -> APIObject:
        """Return the stored preferences under the requesting user's name."""
        return APIObject(
            type="userpreference",
            id=_user_name(request),
            object=UserPreference(data=self._read()),
        )

    def list(self, request: APIRequest, schema: Optional[APISchema]) -> APIObjectList:
        return APIObjectList(objects=[self.by_id(request, schema, "")])

    def update(
        self, request: APIRequest, schema: Optional[APISchema], data: APIObject, id: str
    ) -> APIObject:
        """Replace the stored document with the given object and return the result."""
        self._write(data.data())
        return self.by_id(request, schema, "")

    def delete(self, request: APIRequest, schema: Optional[APISchema], id: str) -> APIObject:
        """Clear the stored preferences."""
        return self.update(request, schema, APIObject(object={}), "")


def register(
    schemas: APISchemas, config_dir: Optional[Union[str, os.PathLike]] = None
) -> APISchema:
    """Add the "userpreference" schema backed by a local preference file."""
    schema = APISchema(
        id="userpreference",
        collection_methods=["GET"],
        resource_methods=["GET", "PUT", "DELETE"],
        resource_fields={"data": {"type": "map[string]"}},
        store=LocalPreferenceStore(config_dir),
    )
    return schemas.add_schema(schema)