"""Istio custom resource model, operator manifest merging, cluster detection and status updates."""

__version__ = "0.1.0"