"""Merging Istio CR settings into an IstioOperator manifest.

An IstioOperator is handled in its JSON/YAML mapping form, for example
``{"spec": {"meshConfig": {...}, "components": {...}, "values": {...}}}``.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .api import Istio, KubernetesResourcesConfig, ResourceClaims, Resources

CPU = "cpu"
MEMORY = "memory"
GLOBAL_FIELD = "global"
PROXY_FIELD = "proxy"
RESOURCES_FIELD = "resources"
LIMITS_FIELD = "limits"
REQUESTS_FIELD = "requests"

_PREFERRED = "preferredDuringSchedulingIgnoredDuringExecution"
_REQUIRED = "requiredDuringSchedulingIgnoredDuringExecution"
_MAX_UINT32 = 2**32 - 1


def _ensure_dict(parent: dict[str, Any], key: str) -> dict[str, Any]:
    """Return ``parent[key]``, replacing it with an empty dict if it is not one."""
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value


def _require(value: Any, component: str) -> Any:
    if value is None:
        raise ValueError(f"{component} component requires a k8s configuration")
    return value


def merge_into(istio: Istio, operator: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of ``operator`` with the configuration of ``istio`` applied.

    The given operator is left unchanged. Raises ValueError when the Istio CR
    holds a configuration that cannot be applied.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(operator)) if operator is not None else {}
    spec = _ensure_dict(merged, "spec")
    _merge_config(istio, spec)
    _merge_components(istio, spec)
    return merged


def _merge_config(istio: Istio, spec: dict[str, Any]) -> None:
    proxies = istio.spec.config.num_trusted_proxies
    if proxies is None:
        return
    if not 0 <= proxies <= _MAX_UINT32:
        raise ValueError(f"numTrustedProxies must be between 0 and {_MAX_UINT32}, got {proxies}")
    mesh_config = _ensure_dict(spec, "meshConfig")
    default_config = _ensure_dict(mesh_config, "defaultConfig")
    topology = _ensure_dict(default_config, "gatewayTopology")
    topology["numTrustedProxies"] = proxies


def _merge_claims(target: dict[str, Any], claims: ResourceClaims) -> None:
    if claims.cpu is not None:
        target[CPU] = claims.cpu
    if claims.memory is not None:
        target[MEMORY] = claims.memory


def _merge_resources(parent: dict[str, Any], resources: Resources) -> None:
    target = _ensure_dict(parent, RESOURCES_FIELD)
    if resources.limits is not None:
        _merge_claims(_ensure_dict(target, LIMITS_FIELD), resources.limits)
    if resources.requests is not None:
        _merge_claims(_ensure_dict(target, REQUESTS_FIELD), resources.requests)


def merge_k8s_config(base: dict[str, Any], config: KubernetesResourcesConfig) -> None:
    """Apply resources, HPA and rollout strategy of ``config`` to the k8s mapping ``base`` in place."""
    if config.resources is not None:
        _merge_resources(base, config.resources)

    if config.hpa_spec is not None:
        hpa = _ensure_dict(base, "hpaSpec")
        if config.hpa_spec.max_replicas is not None:
            hpa["maxReplicas"] = config.hpa_spec.max_replicas
        if config.hpa_spec.min_replicas is not None:
            hpa["minReplicas"] = config.hpa_spec.min_replicas

    if config.strategy is not None:
        rolling = config.strategy.rolling_update
        if rolling is None:
            raise ValueError("strategy requires a rollingUpdate configuration")
        target = _ensure_dict(_ensure_dict(base, "strategy"), "rollingUpdate")
        if rolling.max_surge is not None:
            target["maxSurge"] = rolling.max_surge.value
        if rolling.max_unavailable is not None:
            target["maxUnavailable"] = rolling.max_unavailable.value


def _merge_components(istio: Istio, spec: dict[str, Any]) -> None:
    components = istio.spec.components
    if components is None:
        return

    if components.ingress_gateway is not None:
        config = _require(components.ingress_gateway.k8s, "ingressGateway")
        op_components = _ensure_dict(spec, "components")
        gateways = op_components.get("ingressGateways")
        if not isinstance(gateways, list) or not gateways:
            gateways = [{}]
            op_components["ingressGateways"] = gateways
        if not isinstance(gateways[0], dict):
            gateways[0] = {}
        merge_k8s_config(_ensure_dict(gateways[0], "k8s"), config)

    if components.pilot is not None:
        config = _require(components.pilot.k8s, "pilot")
        pilot = _ensure_dict(_ensure_dict(spec, "components"), "pilot")
        merge_k8s_config(_ensure_dict(pilot, "k8s"), config)

    if components.proxy is not None:
        proxy_config = _require(components.proxy.k8s, "proxy")
        if proxy_config.resources is not None:
            values = _ensure_dict(spec, "values")
            proxy = _ensure_dict(_ensure_dict(values, GLOBAL_FIELD), PROXY_FIELD)
            _merge_resources(proxy, proxy_config.resources)

    if components.cni is not None:
        cni_config = _require(components.cni.k8s, "cni")
        cni = _ensure_dict(_ensure_dict(spec, "components"), "cni")
        k8s = _ensure_dict(cni, "k8s")
        affinity = _ensure_dict(k8s, "affinity")
        if cni_config.affinity is not None:
            _merge_affinity(affinity, cni_config.affinity)
        if cni_config.resources is not None:
            _merge_resources(k8s, cni_config.resources)


def _pod_affinity_term(term: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in ("topologyKey", "namespaces", "labelSelector"):
        if term.get(key) is not None:
            out[key] = copy.deepcopy(term[key])
    return out


def _weighted_pod_affinity_term(term: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if term.get("weight") is not None:
        out["weight"] = term["weight"]
    out["podAffinityTerm"] = _pod_affinity_term(term.get("podAffinityTerm") or {})
    return out


def _merge_pod_affinity(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    target[_PREFERRED] = [_weighted_pod_affinity_term(t) for t in source.get(_PREFERRED) or []]
    target[_REQUIRED] = [_pod_affinity_term(t) for t in source.get(_REQUIRED) or []]


def _node_selector_requirement(expression: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "key": expression.get("key", ""),
        "operator": str(expression.get("operator", "")),
    }
    if expression.get("values") is not None:
        out["values"] = list(expression["values"])
    return out


def _node_selector_term(term: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "matchExpressions": [
            _node_selector_requirement(e) for e in term.get("matchExpressions") or []
        ],
        "matchFields": [_node_selector_requirement(e) for e in term.get("matchFields") or []],
    }


def _merge_node_affinity(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    preferred = []
    for term in source.get(_PREFERRED) or []:
        entry: dict[str, Any] = {}
        if term.get("weight") is not None:
            entry["weight"] = term["weight"]
        entry["preference"] = _node_selector_term(term.get("preference") or {})
        preferred.append(entry)
    target[_PREFERRED] = preferred

    required: dict[str, Any] = {}
    source_required = source.get(_REQUIRED)
    if source_required is not None:
        required["nodeSelectorTerms"] = [
            _node_selector_term(t) for t in source_required.get("nodeSelectorTerms") or []
        ]
    target[_REQUIRED] = required


def _merge_affinity(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    if source.get("podAffinity") is not None:
        _merge_pod_affinity(_ensure_dict(target, "podAffinity"), source["podAffinity"])
    if source.get("podAntiAffinity") is not None:
        _merge_pod_affinity(_ensure_dict(target, "podAntiAffinity"), source["podAntiAffinity"])
    if source.get("nodeAffinity") is not None:
        _merge_node_affinity(_ensure_dict(target, "nodeAffinity"), source["nodeAffinity"])