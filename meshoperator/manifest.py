"""Building the IstioOperator manifest that gets installed."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .api import Istio
from .clusterconfig import merge_overrides
from .merge import merge_into

MERGED_ISTIO_OPERATOR_FILE = "merged-istio-operator.yaml"
WORKING_DIR = "/tmp"

_ACTION_RE = re.compile(r"\{\{(-\s)?(.*?)(\s-)?\}\}", re.S)
_FIELD_RE = re.compile(r"\.(\w+)")
_COMMENT_RE = re.compile(r"/\*.*\*/", re.S)


@dataclass(frozen=True)
class TemplateData:
    istio_version: str
    istio_image_base: str


def _evaluate(expression: str, values: Mapping[str, str]) -> str:
    expression = expression.strip()
    if _COMMENT_RE.fullmatch(expression):
        return ""
    if not expression:
        raise ValueError("missing value for command in template")
    match = _FIELD_RE.fullmatch(expression)
    if match is None:
        raise ValueError(f"unsupported template action {expression!r}")
    name = match.group(1)
    if name not in values:
        raise ValueError(f"can't evaluate field {name} in template data")
    return values[name]


def render_template(template_raw: str, data: TemplateData) -> str:
    """Substitute ``{{.IstioVersion}}`` and ``{{.IstioImageBase}}`` in ``template_raw``."""
    if not data.istio_version:
        raise ValueError("IstioImageBase cannot be empty")
    if not data.istio_image_base:
        raise ValueError("IstioImageBase cannot be empty")
    values = {"IstioVersion": data.istio_version, "IstioImageBase": data.istio_image_base}

    parts: list[str] = []
    position = 0
    trim_next = False
    for match in _ACTION_RE.finditer(template_raw):
        text = template_raw[position:match.start()]
        if trim_next:
            text = text.lstrip()
        if match.group(1):
            text = text.rstrip()
        parts.append(text)
        parts.append(_evaluate(match.group(2), values))
        trim_next = match.group(3) is not None
        position = match.end()
    tail = template_raw[position:]
    if trim_next:
        tail = tail.lstrip()
    parts.append(tail)

    if any("{{" in text for text in parts[::2]):
        raise ValueError("unclosed action in template")
    return "".join(parts)


def _validate_operator(document: Any) -> dict[str, Any]:
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError("IstioOperator manifest must be a mapping")
    spec = document.get("spec")
    if spec is None:
        return document
    if not isinstance(spec, dict):
        raise ValueError("IstioOperator spec must be a mapping")
    for key in ("meshConfig", "values", "components"):
        if spec.get(key) is not None and not isinstance(spec[key], dict):
            raise ValueError(f"IstioOperator spec.{key} must be a mapping")
    return document


class IstioMerger:
    """Merges the Istio CR and cluster overrides into an IstioOperator file."""

    def __init__(self, working_dir: str | Path = WORKING_DIR) -> None:
        self.working_dir = Path(working_dir)

    def get_istio_operator(self, base_manifest_path: str | Path) -> dict[str, Any]:
        """Read and validate an IstioOperator manifest."""
        text = Path(base_manifest_path).read_text()
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid IstioOperator manifest: {exc}") from exc
        return _validate_operator(document)

    def merge(
        self,
        base_manifest_path: str | Path,
        istio_cr: Istio,
        template_data: TemplateData,
        overrides: Mapping[str, Any],
    ) -> str:
        """Write the merged IstioOperator to the working directory and return its path."""
        operator = self.get_istio_operator(base_manifest_path)
        merged = merge_into(istio_cr, operator)
        manifest = yaml.safe_dump(merged, sort_keys=True, default_flow_style=False)
        templated = render_template(manifest, template_data)
        with_overrides = merge_overrides(templated, overrides)

        target = self.working_dir / MERGED_ISTIO_OPERATOR_FILE
        target.write_text(with_overrides)
        return str(target)