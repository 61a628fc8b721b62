# meshoperator

Building blocks for an operator that manages a service-mesh installation
through an `Istio` custom resource. Everything works on plain Python objects
and dictionaries; cluster access is left to a client object you supply.

## Modules

- `meshoperator.api` – the data model of the custom resource: `Istio` with
  `ObjectMeta`, `IstioSpec` (`Config`, `Components`) and `IstioStatus`;
  component settings `IstioComponent`, `KubernetesResourcesConfig`, `HPASpec`,
  `Strategy`, `RollingUpdate`, `IntOrString`, `Resources`, `ResourceClaims`,
  `ProxyComponent`, `ProxyK8sConfig`, `CniComponent`, `CniK8sConfig`; the
  `State` enum (Ready, Processing, Error, Deleting, Warning) and
  `GroupVersion` (`V1ALPHA1`, `V1ALPHA2`). `Istio.to_dict()` and
  `Istio.from_dict()` convert to and from the camel-case JSON form;
  `Istio.has_finalizer()` tells whether any finalizer is set.
- `meshoperator.merge` – `merge_into(istio, operator)` returns a copy of an
  IstioOperator document (a dictionary) with the resource's settings applied:
  number of trusted proxies, pilot and ingress gateway resources, HPA and
  rolling-update strategy, CNI affinity and resources, and sidecar proxy
  resources. The input is left unchanged. `merge_k8s_config(base, config)`
  applies a `KubernetesResourcesConfig` to a `k8s` mapping in place. Invalid
  settings raise `ValueError`.
- `meshoperator.proxy_resources` – `get_proxy_resources(istio, operator)`
  merges and returns the sidecar `ResourceRequirements` (`requests` and
  `limits`, each with `cpu` and `memory` as `Quantity`). It raises
  `ValueError("proxy resources missing in merged IstioOperator")` when either
  section lacks CPU or memory.
- `meshoperator.quantity` – `Quantity.parse()` reads Kubernetes resource
  quantities such as `500m`, `800Mi` or `1e3`; quantities compare, add and
  print back in their own format.
- `meshoperator.clusterconfig` – `evaluate_cluster_size(client)` returns
  `ClusterSize.EVALUATION` when total node CPU is below 5 or memory below 10G,
  otherwise `PRODUCTION`; `ClusterSize.default_manifest_path()` names the
  matching template. `discover_cluster_flavour(client)` recognises k3d, GKE and
  Gardener nodes; `evaluate_cluster_configuration(client)` returns the
  overrides for that flavour, and `get_domain_name(client)` reads the Gardener
  `shoot-info` config map. `merge_overrides(template, overrides)` deep-merges
  overrides into a YAML document and returns YAML text. The client is any
  object with `list_nodes()` returning `Node` objects and
  `get_config_map(namespace, name)` returning a `ConfigMap`.
- `meshoperator.hyperscaler` – `HyperscalerClient(metadata_host, timeout).is_aws()`
  is true when the instance metadata endpoint answers with HTTP 200.
- `meshoperator.manifest` – `IstioMerger(working_dir)` (default `/tmp`) reads an
  operator template with `get_istio_operator()`; `merge()` applies an `Istio`
  resource, fills `{{ .IstioVersion }}` and `{{ .IstioImageBase }}` from a
  `TemplateData` through `render_template()`, merges cluster overrides and
  writes `merged-istio-operator.yaml` into the working directory, returning
  its path.
- `meshoperator.status` – `StatusHandler(client)` sets a resource's status to
  Processing, Error or Warning (from a `DescribedError`'s level), Deleting or
  Ready. It re-reads the resource and writes the status, retrying up to five
  times on `ConflictError`. The client is any object with
  `get(namespace, name)` and `update_status(istio)`.
- `meshoperator.described_errors` – `DescribedError`, an exception carrying a
  status description and a `Level` (`ERROR` or `WARNING`); `set_warning()` and
  `disable_error_wrap()` return adjusted copies.

## Installation

```
pip install .
```

## Example

```python
from meshoperator.api import Config, Istio, IstioSpec
from meshoperator.merge import merge_into

istio = Istio(spec=IstioSpec(config=Config(num_trusted_proxies=2)))
operator = merge_into(istio, {"spec": {}})
print(operator["spec"]["meshConfig"]["defaultConfig"]["gatewayTopology"])
# {'numTrustedProxies': 2}
```

A `DescribedError` carries both the underlying message and the text for the
resource status:

```python
from meshoperator.described_errors import DescribedError

err = DescribedError(RuntimeError("error happened"), "Something")
print(str(err))            # error happened
print(err.description())   # Something: error happened
```

## What it does not do

The package has no command and runs no controller loop. It does not talk to a
Kubernetes API server itself, does not watch or reconcile resources, and does
not install, upgrade or remove the mesh; it only prepares the operator
manifest and status updates, and the caller supplies the client objects that
reach the cluster.

## Running the tests

```
pip install ".[test]"
pytest
```