"""Proxy sidecar resources resolved from an IstioOperator and an Istio CR."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .api import Istio
from .merge import (
    CPU,
    GLOBAL_FIELD,
    LIMITS_FIELD,
    MEMORY,
    PROXY_FIELD,
    REQUESTS_FIELD,
    RESOURCES_FIELD,
    merge_into,
)
from .quantity import Quantity


@dataclass
class ResourceRequirements:
    """Requests and limits keyed by resource name (``cpu``, ``memory``)."""

    requests: dict[str, Quantity] = field(default_factory=dict)
    limits: dict[str, Quantity] = field(default_factory=dict)


def _lookup(mapping: Any, *keys: str) -> Any:
    current = mapping
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _has_cpu_and_memory(section: Any) -> bool:
    return (
        isinstance(section, Mapping)
        and section.get(CPU) is not None
        and section.get(MEMORY) is not None
    )


def _proxy_resources(operator: Mapping[str, Any]) -> Mapping[str, Any] | None:
    resources = _lookup(operator, "spec", "values", GLOBAL_FIELD, PROXY_FIELD, RESOURCES_FIELD)
    if not isinstance(resources, Mapping):
        return None
    if not _has_cpu_and_memory(resources.get(REQUESTS_FIELD)):
        return None
    if not _has_cpu_and_memory(resources.get(LIMITS_FIELD)):
        return None
    return resources


def get_proxy_resources(istio: Istio, operator: Mapping[str, Any] | None) -> ResourceRequirements:
    """Merge ``istio`` into ``operator`` and return the proxy sidecar resources.

    Raises ValueError when the merged operator lacks CPU or memory requests or
    limits, or when one of them is not a valid quantity.
    """
    merged = merge_into(istio, operator)
    resources = _proxy_resources(merged)
    if resources is None:
        raise ValueError("proxy resources missing in merged IstioOperator")

    def section(name: str) -> dict[str, Quantity]:
        claims = resources[name]
        return {key: Quantity.parse(claims[key]) for key in (CPU, MEMORY)}

    return ResourceRequirements(requests=section(REQUESTS_FIELD), limits=section(LIMITS_FIELD))