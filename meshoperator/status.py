"""Updating the status of the Istio CR."""

from __future__ import annotations

import copy
import random
import time
from typing import Protocol

from .api import Istio, IstioStatus, State
from .described_errors import DescribedError, Level

_RETRY_STEPS = 5
_RETRY_DELAY = 0.010
_RETRY_JITTER = 0.1


class ConflictError(Exception):
    """The object was modified since it was read."""


class _IstioClient(Protocol):
    def get(self, namespace: str, name: str) -> Istio: ...

    def update_status(self, istio: Istio) -> None: ...


class StatusHandler:
    """Writes state and description of an Istio CR through its status subresource."""

    def __init__(self, client: _IstioClient) -> None:
        self.client = client

    def _update(self, istio_cr: Istio) -> None:
        new_status: IstioStatus = copy.deepcopy(istio_cr.status)
        last_error: ConflictError | None = None
        for attempt in range(_RETRY_STEPS):
            if attempt:
                time.sleep(_RETRY_DELAY * (1 + random.uniform(0, _RETRY_JITTER)))
            latest = self.client.get(istio_cr.metadata.namespace, istio_cr.metadata.name)
            istio_cr.metadata = latest.metadata
            istio_cr.spec = latest.spec
            istio_cr.api_version = latest.api_version
            istio_cr.kind = latest.kind
            istio_cr.status = copy.deepcopy(new_status)
            try:
                self.client.update_status(istio_cr)
                return
            except ConflictError as exc:
                last_error = exc
        assert last_error is not None
        raise last_error

    def update_to_processing(self, description: str, istio_cr: Istio) -> None:
        istio_cr.status.state = State.PROCESSING
        istio_cr.status.description = description
        self._update(istio_cr)

    def update_to_error(self, err: DescribedError, istio_cr: Istio) -> None:
        istio_cr.status.state = State.WARNING if err.level == Level.WARNING else State.ERROR
        istio_cr.status.description = err.description()
        self._update(istio_cr)

    def update_to_deleting(self, istio_cr: Istio) -> None:
        istio_cr.status.state = State.DELETING
        istio_cr.status.description = "Removing Istio resources"
        self._update(istio_cr)

    def update_to_ready(self, istio_cr: Istio) -> None:
        istio_cr.status.state = State.READY
        istio_cr.status.description = ""
        self._update(istio_cr)