"""Data model of the Istio custom resource."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

GROUP = "operator.kyma-project.io"
KIND = "Istio"
COMPONENT_NAME = "istio"


@dataclass(frozen=True)
class GroupVersion:
    """API group and version of a resource."""

    group: str
    version: str

    def __str__(self) -> str:
        return f"{self.group}/{self.version}"


V1ALPHA1 = GroupVersion(GROUP, "v1alpha1")
V1ALPHA2 = GroupVersion(GROUP, "v1alpha2")
STORAGE_VERSION = V1ALPHA2


class State(str, Enum):
    """Valid states of an Istio CR."""

    READY = "Ready"
    PROCESSING = "Processing"
    ERROR = "Error"
    DELETING = "Deleting"
    WARNING = "Warning"


_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _field(json_name, *, kind=None, omitempty=True, default=None, default_factory=None):
    metadata = {"json": json_name, "kind": kind, "omitempty": omitempty}
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, (str, list, dict)) and len(value) == 0


def _encode(value: Any) -> Any:
    if isinstance(value, _Serializable):
        return value.to_dict()
    if isinstance(value, IntOrString):
        return value.value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime(_TIME_FORMAT)
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(kind: Any, raw: Any) -> Any:
    if kind is None:
        return _encode(raw)
    if kind is datetime:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if issubclass(kind, Enum):
        try:
            return kind(raw)
        except ValueError:
            return raw
    if kind is IntOrString:
        return IntOrString.from_json(raw)
    return kind.from_dict(raw)


class _Serializable:
    """Conversion to and from the JSON form used by the API server."""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            name = f.metadata.get("json")
            if name is None:
                continue
            value = getattr(self, f.name)
            if f.metadata["omitempty"] and _is_empty(value):
                continue
            out[name] = _encode(value)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        if not isinstance(data, Mapping):
            raise TypeError(f"{cls.__name__} expects a mapping, got {type(data).__name__}")
        kwargs = {}
        for f in fields(cls):
            name = f.metadata.get("json")
            if name is None or data.get(name) is None:
                continue
            kwargs[f.name] = _decode(f.metadata["kind"], data[name])
        return cls(**kwargs)


@dataclass(frozen=True)
class IntOrString:
    """A value that is either an integer or a string, such as ``5`` or ``"50%"``."""

    value: int | str

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, str)):
            raise TypeError(f"IntOrString takes an int or a str, got {self.value!r}")

    @property
    def is_int(self) -> bool:
        return isinstance(self.value, int)

    @classmethod
    def from_json(cls, raw: Any) -> IntOrString:
        return cls(raw)


@dataclass
class Config(_Serializable):
    """Configuration of the Istio installation."""

    num_trusted_proxies: int | None = _field("numTrustedProxies")


@dataclass
class ResourceClaims(_Serializable):
    cpu: str | None = _field("cpu")
    memory: str | None = _field("memory")


@dataclass
class Resources(_Serializable):
    limits: ResourceClaims | None = _field("limits", kind=ResourceClaims)
    requests: ResourceClaims | None = _field("requests", kind=ResourceClaims)


@dataclass
class HPASpec(_Serializable):
    max_replicas: int | None = _field("maxReplicas")
    min_replicas: int | None = _field("minReplicas")


@dataclass
class RollingUpdate(_Serializable):
    max_surge: IntOrString | None = _field("maxSurge", kind=IntOrString, omitempty=False)
    max_unavailable: IntOrString | None = _field(
        "maxUnavailable", kind=IntOrString, omitempty=False
    )


@dataclass
class Strategy(_Serializable):
    rolling_update: RollingUpdate | None = _field(
        "rollingUpdate", kind=RollingUpdate, omitempty=False
    )


@dataclass
class KubernetesResourcesConfig(_Serializable):
    hpa_spec: HPASpec | None = _field("hpaSpec", kind=HPASpec)
    strategy: Strategy | None = _field("strategy", kind=Strategy)
    resources: Resources | None = _field("resources", kind=Resources)


@dataclass
class IstioComponent(_Serializable):
    """Configuration of a generic component such as the ingress gateway or istiod."""

    k8s: KubernetesResourcesConfig | None = _field(
        "k8s", kind=KubernetesResourcesConfig, omitempty=False
    )


@dataclass
class ProxyK8sConfig(_Serializable):
    resources: Resources | None = _field("resources", kind=Resources)


@dataclass
class ProxyComponent(_Serializable):
    """Configuration of the proxy sidecar."""

    k8s: ProxyK8sConfig | None = _field("k8s", kind=ProxyK8sConfig, omitempty=False)


@dataclass
class CniK8sConfig(_Serializable):
    """CNI settings; ``affinity`` is a Kubernetes affinity in its JSON form."""

    affinity: dict[str, Any] | None = _field("affinity")
    resources: Resources | None = _field("resources", kind=Resources)


@dataclass
class CniComponent(_Serializable):
    k8s: CniK8sConfig | None = _field("k8s", kind=CniK8sConfig, omitempty=False)


@dataclass
class Components(_Serializable):
    pilot: IstioComponent | None = _field("pilot", kind=IstioComponent)
    ingress_gateway: IstioComponent | None = _field("ingressGateway", kind=IstioComponent)
    cni: CniComponent | None = _field("cni", kind=CniComponent)
    proxy: ProxyComponent | None = _field("proxy", kind=ProxyComponent)


@dataclass
class IstioSpec(_Serializable):
    """Desired configuration for installing or updating Istio."""

    config: Config = _field("config", kind=Config, default_factory=Config)
    components: Components | None = _field("components", kind=Components)


@dataclass
class IstioStatus(_Serializable):
    """Observed state of an Istio CR."""

    state: State | str = _field("state", kind=State, omitempty=False, default="")
    conditions: list[dict[str, Any]] | None = _field("conditions")
    description: str = _field("description", default="")


@dataclass
class ObjectMeta(_Serializable):
    name: str = _field("name", default="")
    namespace: str = _field("namespace", default="")
    uid: str = _field("uid", default="")
    resource_version: str = _field("resourceVersion", default="")
    creation_timestamp: datetime | None = _field("creationTimestamp", kind=datetime)
    deletion_timestamp: datetime | None = _field("deletionTimestamp", kind=datetime)
    labels: dict[str, str] = _field("labels", default_factory=dict)
    annotations: dict[str, str] = _field("annotations", default_factory=dict)
    finalizers: list[str] = _field("finalizers", default_factory=list)


@dataclass
class Istio(_Serializable):
    """The Istio custom resource: metadata, specification and status."""

    metadata: ObjectMeta = _field("metadata", kind=ObjectMeta, default_factory=ObjectMeta)
    spec: IstioSpec = _field("spec", kind=IstioSpec, default_factory=IstioSpec)
    status: IstioStatus = _field("status", kind=IstioStatus, default_factory=IstioStatus)
    api_version: str = _field("apiVersion", default="")
    kind: str = _field("kind", default="")

    def has_finalizer(self) -> bool:
        return len(self.metadata.finalizers) > 0

    def component_name(self) -> str:
        return COMPONENT_NAME

    def to_dict(self) -> dict[str, Any]:
        return super().to_dict()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Istio:
        return super().from_dict(data)