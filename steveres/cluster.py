"""The local cluster pseudo-resource and the apply action shared with other schemas."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from .apitypes import (
    Access,
    AccessListByVerb,
    APIEvent,
    APIObject,
    APIObjectList,
    APIRequest,
    APISchema,
    APISchemas,
)

CLUSTER_SCHEMA_ID = "management.cattle.io.cluster"
CLUSTER_GROUP = "management.cattle.io"
CLUSTER_VERSION = "v3"
CLUSTER_KIND = "Cluster"
LOCAL_CLUSTER = "local"

APPLY_ACTION = {"input": "applyInput", "output": "applyOutput"}


@dataclass
class Condition:
    """A condition reported in a cluster's status."""

    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict:
        out = {"type": self.type, "status": self.status}
        if self.reason:
            out["reason"] = self.reason
        if self.message:
            out["message"] = self.message
        return out


@dataclass
class Spec:
    """The desired settings of a cluster."""

    display_name: str = ""
    internal: bool = False
    description: str = ""

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"displayName": self.display_name}
        if self.internal:
            out["internal"] = True
        out["description"] = self.description
        return out


@dataclass
class Status:
    """The observed state of a cluster."""

    conditions: list[Condition] = field(default_factory=list)
    driver: str = ""
    provider: str = ""
    version: Optional[dict] = None

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.conditions:
            out["conditions"] = [c.to_dict() for c in self.conditions]
        if self.driver:
            out["driver"] = self.driver
        out["provider"] = self.provider
        if self.version is not None:
            out["version"] = dict(self.version)
        return out


@dataclass
class Cluster:
    """A cluster object as served by the API."""

    name: str = ""
    spec: Spec = field(default_factory=Spec)
    status: Status = field(default_factory=Status)
    kind: str = CLUSTER_KIND
    api_version: str = f"{CLUSTER_GROUP}/{CLUSTER_VERSION}"

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.kind:
            out["kind"] = self.kind
        if self.api_version:
            out["apiVersion"] = self.api_version
        out["metadata"] = {"name": self.name} if self.name else {}
        out["spec"] = self.spec.to_dict()
        out["status"] = self.status.to_dict()
        return out


@dataclass
class ApplyInput:
    """The input of the apply action: a YAML document and a default namespace."""

    default_namespace: str = ""
    yaml: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ApplyInput":
        return cls(
            default_namespace=str(data.get("defaultNamespace", "") or ""),
            yaml=str(data.get("yaml", "") or ""),
        )

    def to_dict(self) -> dict:
        out = {}
        if self.default_namespace:
            out["defaultNamespace"] = self.default_namespace
        if self.yaml:
            out["yaml"] = self.yaml
        return out


class ClusterStore:
    """Serves the single "local" cluster; everything else is not found."""

    def __init__(self, provider: str = "", version_info: Optional[dict] = None):
        self.provider = provider
        self.version_info = version_info

    def _local(self) -> APIObject:
        cluster = Cluster(
            name=LOCAL_CLUSTER,
            spec=Spec(display_name="Local Cluster", internal=True),
            status=Status(
                conditions=[Condition(type="Ready", status="True")],
                driver=LOCAL_CLUSTER,
                provider=self.provider,
                version=dict(self.version_info) if self.version_info is not None else None,
            ),
        )
        return APIObject(id=LOCAL_CLUSTER, object=cluster)

    def by_id(self, request: APIRequest, schema: Optional[APISchema], id: str) -> APIObject:
        """Return the local cluster; raise LookupError for any other id or namespace."""
        if not request.namespace and id == LOCAL_CLUSTER:
            return self._local()
        raise LookupError(f"cluster {id!r} not found")

    def list(self, request: APIRequest, schema: Optional[APISchema]) -> APIObjectList:
        """List the local cluster; clusters are not namespaced, so a namespace finds nothing."""
        if request.namespace:
            raise LookupError("clusters are not namespaced")
        return APIObjectList(objects=[self._local()])

    async def watch(
        self, request: APIRequest, schema: Optional[APISchema] = None
    ) -> AsyncIterator[APIEvent]:
        """Send the local cluster once, then stay open until the stream is closed."""
        yield APIEvent(
            name=LOCAL_CLUSTER,
            resource_type="management.cattle.io.clusters",
            id=LOCAL_CLUSTER,
            object=self._local(),
        )
        await asyncio.Event().wait()


def register(
    schemas: APISchemas,
    provider: str = "",
    version_info: Optional[dict] = None,
    apply_handler: Any = None,
) -> APISchema:
    """Add the cluster schema and the schemas of the apply action's input and output."""
    schemas.add_schema(
        APISchema(
            id="applyInput",
            resource_fields={
                "defaultNamespace": {"type": "string"},
                "yaml": {"type": "string"},
            },
        )
    )
    schemas.add_schema(
        APISchema(id="applyOutput", resource_fields={"resources": {"type": "array[json]"}})
    )
    schema = APISchema(
        id=CLUSTER_SCHEMA_ID,
        collection_methods=["GET"],
        resource_methods=["GET"],
        resource_fields={"spec": {"type": "json"}, "status": {"type": "json"}},
        attributes={
            "access": AccessListByVerb({"watch": [Access("*", "*")]}),
            "group": CLUSTER_GROUP,
            "version": CLUSTER_VERSION,
            "kind": CLUSTER_KIND,
        },
        store=ClusterStore(provider, version_info),
    )
    if apply_handler is not None:
        schema.action_handlers["apply"] = apply_handler
        schema.resource_actions["apply"] = dict(APPLY_ACTION)
    return schemas.add_schema(schema)


def add_apply(schemas: APISchemas, schema: APISchema) -> None:
    """Give the schema the cluster's apply action, unless it has one already."""
    if "apply" in schema.action_handlers:
        return
    cluster = schemas.lookup_schema(CLUSTER_SCHEMA_ID)
    if cluster is None:
        return
    handler = cluster.action_handlers.get("apply")
    if handler is None:
        return
    schema.action_handlers["apply"] = handler
    schema.resource_actions["apply"] = dict(APPLY_ACTION)