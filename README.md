# steveres

Resource schemas, stores and formatters for a Kubernetes-style API server.
The package is a library: you hand it your schema collection, a cluster cache
and a discovery source, and it provides the resources that sit behind a `/v1`
API.

## What is in it

- **`steveres.apitypes`**: the shared types: `APIObject`, `APIObjectList`,
  `APIEvent`, `APISchema`, `APISchemas` (with `add_schema` and
  `lookup_schema`), `APIRequest`, `Access`, `AccessListByVerb` (with
  `grants(verb, namespace, name)`), `GroupVersionKind` and
  `GroupVersionResource`.
- **`steveres.datapath`**: `get_value`, `put_value` and `remove_value` read,
  write and remove values at key paths inside nested dictionaries.
  `get_value` raises `KeyError` for a missing path.
- **`steveres.common`**: `self_link(gvr, name, namespace)` builds an object's
  API path. `include_fields`, `exclude_fields` and `exclude_values` change an
  object dictionary in place. They follow the `include`, `exclude` and
  `excludeValues` query parameters of an `APIRequest`.
- **`steveres.formatters`**: `drop_helm_data` removes `data.release` from
  objects labelled as owned by Helm or Tiller. `pod` sets
  `metadata.state.name` from the pod's third table column, passed through
  `lower_title`.
- **`steveres.counts`**: `CountStore` counts the objects in a cluster cache by
  schema and namespace. It counts only what the request's access allows, and
  tracks errors, transitioning objects and simple states. `CountStore.watch`
  gives an async stream of changed counts and needs a running event loop. The
  first update is sent at once. Later updates are merged and sent at most once
  per debounce period (`DEBOUNCE_SECONDS`, 5 seconds) by `debounce_counts`.
  `register` adds the `count` schema.
- **`steveres.schemawatch`**: `SchemaWatchStore.watch` streams create, change
  and remove events when the schemas visible to a user change. This happens
  when the schema factory signals a change, or when the user's access set id
  changes; the access set is checked every 2 seconds. `diff_schemas` works out
  the events and ignores the `access` attribute. `setup_watcher` adds the
  `schema` schema.
- **`steveres.userprefs`**: `LocalPreferenceStore` keeps preferences in
  `prefs.json` inside a configuration directory. By default this is a `steve`
  directory under the user's configuration directory. The store supports
  `by_id`, `list`, `update` and `delete`. `register` adds the
  `userpreference` schema.
- **`steveres.cluster`**: `ClusterStore` serves a single synthetic `local`
  cluster (`Cluster`, `Spec`, `Status`, `Condition`). Any other id raises
  `LookupError`. `register` adds the cluster schema and the `applyInput` and
  `applyOutput` schemas. `add_apply` copies the cluster's `apply` action
  handler onto another schema.
- **`steveres.apigroups`**: `APIGroupStore` lists API groups from a discovery
  object that has `server_groups()`. A group with no name is listed as
  `core`. `template` returns its read-only schema template.
- **`steveres.registry`**: `default_schemas` registers the count, cluster and
  user preference schemas. `default_schema_templates` returns the `Template`
  list for API groups, config maps, secrets, pods and clusters.

## Install

```
pip install .
```

To run the tests, install the test extra:

```
pip install ".[test]"
pytest
```

## Example

```python
from steveres.apitypes import APIRequest, GroupVersionResource
from steveres.common import include_fields, self_link

gvr = GroupVersionResource(group="", version="v1", resource="pods")
print(self_link(gvr, "rancher", "cattle-system"))
# /api/v1/namespaces/cattle-system/pods/rancher

request = APIRequest(query={"include": ["kind", "metadata.name"]})
obj = {"kind": "Pod", "metadata": {"name": "web", "uid": "1"}}
include_fields(request, obj)
print(obj)
# {'kind': 'Pod', 'metadata': {'name': 'web'}}
```

## What it does not do

- It has no HTTP server and no command. Serving requests, routing and
  rendering responses are left to the caller.
- It does not talk to Kubernetes. The cluster cache, the discovery source, the
  schema factory and the access lookup are objects you supply.
- It does not implement applying YAML. The cluster's `apply` action exists
  only if you pass an `apply_handler` to `cluster.register`.
  `default_schemas` does not pass one.
- It has no proxy store for real resources and no table column discovery.