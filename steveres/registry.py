"""Registration of the built-in schemas and the default schema templates."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from . import cluster, counts, formatters, userprefs
from .apitypes import APISchema, APISchemas


@dataclass
class Template:
    """Customizations applied to the schema matching an id, group or kind."""

    id: str = ""
    group: str = ""
    kind: str = ""
    customize: Optional[Callable[[APISchema], None]] = None
    formatter: Optional[Callable[..., None]] = None
    store: Any = None


def default_schemas(
    base_schemas: APISchemas,
    cluster_cache: Any,
    provider: str = "",
    version_info: Optional[dict] = None,
    config_dir: Optional[Union[str, os.PathLike]] = None,
) -> APISchemas:
    """Register the count, cluster and user preference schemas."""
    counts.register(base_schemas, cluster_cache)
    cluster.register(base_schemas, provider, version_info)
    userprefs.register(base_schemas, config_dir)
    return base_schemas


def default_schema_templates(base_schemas: APISchemas, discovery: Any) -> list[Template]:
    """The templates that adjust well-known resource schemas."""
    from . import apigroups

    def customize_cluster(schema: APISchema) -> None:
        cluster.add_apply(base_schemas, schema)

    return [
        apigroups.template(discovery),
        Template(id="configmap", formatter=formatters.drop_helm_data),
        Template(id="secret", formatter=formatters.drop_helm_data),
        Template(id="pod", formatter=formatters.pod),
        Template(id=cluster.CLUSTER_SCHEMA_ID, customize=customize_cluster),
    ]