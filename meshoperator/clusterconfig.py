"""Detection of cluster size and flavour, and the overrides they imply."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

import yaml

from .quantity import Quantity, Scale

PRODUCTION_CLUSTER_CPU_THRESHOLD = 5
PRODUCTION_CLUSTER_MEMORY_THRESHOLD_GI = 10
LOCAL_KYMA_DOMAIN = "local.kyma.dev"

CONFIG_MAP_SHOOT_INFO_NAME = "shoot-info"
CONFIG_MAP_SHOOT_INFO_NS = "kube-system"

PRODUCTION_DEFAULT_PATH = "manifests/istio-operator-template.yaml"
EVALUATION_DEFAULT_PATH = "manifests/istio-operator-template-light.yaml"

ClusterConfiguration = dict[str, Any]

_GKE_RE = re.compile(r"v\d+\.\d+\.\d+-gke\.\d+")
_K3D_RE = re.compile(r"v\d+\.\d+\.\d+\+k3s\d+")
_GARDENER_RE = re.compile(r"Garden Linux \d+.\d+")


@dataclass
class Node:
    """The parts of a cluster node that matter for size and flavour detection."""

    name: str = ""
    capacity: dict[str, Quantity] = field(default_factory=dict)
    kube_proxy_version: str = ""
    os_image: str = ""


@dataclass
class ConfigMap:
    name: str = ""
    namespace: str = ""
    data: dict[str, str] = field(default_factory=dict)


class _ClusterClient(Protocol):
    def list_nodes(self) -> list[Node]: ...

    def get_config_map(self, namespace: str, name: str) -> ConfigMap: ...


class ClusterSize(IntEnum):
    UNKNOWN = 0
    EVALUATION = 1
    PRODUCTION = 2

    def __str__(self) -> str:
        return {ClusterSize.EVALUATION: "Evaluation", ClusterSize.PRODUCTION: "Production"}.get(
            self, "Unknown"
        )

    def default_manifest_path(self) -> str:
        """Path of the operator template that suits this cluster size."""
        return {
            ClusterSize.EVALUATION: EVALUATION_DEFAULT_PATH,
            ClusterSize.PRODUCTION: PRODUCTION_DEFAULT_PATH,
        }.get(self, "Unknown")


def evaluate_cluster_size(client: _ClusterClient) -> ClusterSize:
    """Return EVALUATION if total CPU or memory capacity is below the production thresholds."""
    cpu = Quantity(0)
    memory = Quantity(0)
    for node in client.list_nodes():
        cpu = cpu + node.capacity.get("cpu", Quantity(0))
        memory = memory + node.capacity.get("memory", Quantity(0))
    if cpu < Quantity(PRODUCTION_CLUSTER_CPU_THRESHOLD) or memory < Quantity.scaled(
        PRODUCTION_CLUSTER_MEMORY_THRESHOLD_GI, Scale.GIGA
    ):
        return ClusterSize.EVALUATION
    return ClusterSize.PRODUCTION


def get_domain_name(client: _ClusterClient) -> str:
    """Domain of a Gardener shoot, read from the shoot-info config map."""
    config_map = client.get_config_map(CONFIG_MAP_SHOOT_INFO_NS, CONFIG_MAP_SHOOT_INFO_NAME)
    return config_map.data.get("domain", "")


def _gateway_dns_annotation(domain: str) -> dict[str, Any]:
    return {
        "gateways": {
            "istio-ingressgateway": {
                "serviceAnnotations": {"dns.gardener.cloud/dnsnames": f"*.{domain}"},
            },
        },
    }


class ClusterFlavour(IntEnum):
    UNKNOWN = 0
    K3D = 1
    GKE = 2
    GARDENER = 3

    def __str__(self) -> str:
        return {
            ClusterFlavour.K3D: "k3d",
            ClusterFlavour.GKE: "GKE",
            ClusterFlavour.GARDENER: "Gardener",
        }.get(self, "Unknown")

    def cluster_configuration(self, client: _ClusterClient) -> ClusterConfiguration:
        """Overrides to apply to the IstioOperator for this flavour."""
        if self is ClusterFlavour.K3D:
            values = {
                "cni": {
                    "cniBinDir": "/bin",
                    "cniConfDir": "/var/lib/rancher/k3s/agent/etc/cni/net.d",
                },
                **_gateway_dns_annotation(LOCAL_KYMA_DOMAIN),
            }
            return {"spec": {"values": values}}
        if self is ClusterFlavour.GKE:
            values = {
                "cni": {
                    "cniBinDir": "/home/kubernetes/bin",
                    "resourceQuotas": {"enabled": True},
                },
            }
            return {"spec": {"values": values}}
        if self is ClusterFlavour.GARDENER:
            domain = get_domain_name(client)
            return {"spec": {"values": _gateway_dns_annotation(domain)}}
        return {}


def discover_cluster_flavour(client: _ClusterClient) -> ClusterFlavour:
    """Detect the flavour from the first node that identifies it."""
    for node in client.list_nodes():
        if _GKE_RE.fullmatch(node.kube_proxy_version):
            return ClusterFlavour.GKE
        if _K3D_RE.fullmatch(node.kube_proxy_version):
            return ClusterFlavour.K3D
        if _GARDENER_RE.fullmatch(node.os_image):
            return ClusterFlavour.GARDENER
    return ClusterFlavour.UNKNOWN


def evaluate_cluster_configuration(client: _ClusterClient) -> ClusterConfiguration:
    return discover_cluster_flavour(client).cluster_configuration(client)


def _deep_merge(target: dict[str, Any], overrides: Mapping[str, Any]) -> None:
    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _deep_merge(current, value)
        elif isinstance(value, Mapping):
            merged: dict[str, Any] = {}
            _deep_merge(merged, value)
            target[key] = merged
        else:
            target[key] = value


def merge_overrides(template: str | bytes, overrides: Mapping[str, Any]) -> str:
    """Deep-merge ``overrides`` into a YAML document, overriding existing values."""
    try:
        document = yaml.safe_load(template)
    except yaml.YAMLError as exc:
        raise ValueError(f"template is not valid YAML: {exc}") from exc
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ValueError("template must be a YAML mapping")
    _deep_merge(document, overrides)
    return yaml.safe_dump(document, sort_keys=True, default_flow_style=False)