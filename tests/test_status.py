import copy

import pytest

from meshoperator.api import Istio, IstioStatus, ObjectMeta, State
from meshoperator.described_errors import DescribedError
from meshoperator.status import ConflictError, StatusHandler


class FakeIstioClient:
    def __init__(self, *objects):
        self.store = {}
        self.update_calls = 0
        for obj in objects:
            stored = copy.deepcopy(obj)
            stored.metadata.resource_version = "1"
            self.store[(obj.metadata.namespace, obj.metadata.name)] = stored

    def get(self, namespace, name):
        return copy.deepcopy(self.store[(namespace, name)])

    def update_status(self, istio):
        self.update_calls += 1
        current = self.store[(istio.metadata.namespace, istio.metadata.name)]
        if istio.metadata.resource_version != current.metadata.resource_version:
            raise ConflictError("object has been modified")
        current.status = copy.deepcopy(istio.status)
        current.metadata.resource_version = str(int(current.metadata.resource_version) + 1)


class ConflictingClient(FakeIstioClient):
    def __init__(self, conflicts, *objects):
        super().__init__(*objects)
        self.conflicts = conflicts

    def update_status(self, istio):
        if self.conflicts > 0:
            self.conflicts -= 1
            self.update_calls += 1
            raise ConflictError("object has been modified")
        super().update_status(istio)


def _cr(**status):
    return Istio(metadata=ObjectMeta(name="test", namespace="default"), status=IstioStatus(**status))


def test_update_to_ready():
    cr = _cr()
    client = FakeIstioClient(cr)

    StatusHandler(client).update_to_ready(cr)

    assert client.get("default", "test").status.state == State.READY


def test_update_to_ready_resets_description():
    cr = _cr(state=State.DELETING, description="some description")
    client = FakeIstioClient(cr)

    StatusHandler(client).update_to_ready(cr)

    stored = client.get("default", "test")
    assert stored.status.state == State.READY
    assert stored.status.description == ""


def test_update_to_deleting():
    cr = _cr()
    client = FakeIstioClient(cr)

    StatusHandler(client).update_to_deleting(cr)

    assert cr.status.state == State.DELETING
    assert cr.status.description == "Removing Istio resources"
    stored = client.get("default", "test")
    assert stored.status.state == State.DELETING
    assert stored.status.description == "Removing Istio resources"


def test_update_to_processing():
    cr = _cr()
    client = FakeIstioClient(cr)

    StatusHandler(client).update_to_processing("processing some stuff", cr)

    assert cr.status.state == State.PROCESSING
    assert cr.status.description == "processing some stuff"
    stored = client.get("default", "test")
    assert stored.status.state == State.PROCESSING
    assert stored.status.description == "processing some stuff"


def test_update_to_error():
    cr = _cr()
    client = FakeIstioClient(cr)
    err = DescribedError(Exception("error happened"), "Something")

    StatusHandler(client).update_to_error(err, cr)

    stored = client.get("default", "test")
    assert stored.status.state == State.ERROR
    assert stored.status.description == "Something: error happened"


def test_update_to_warning():
    cr = _cr()
    client = FakeIstioClient(cr)
    err = DescribedError(Exception("error happened"), "Something").set_warning()

    StatusHandler(client).update_to_error(err, cr)

    stored = client.get("default", "test")
    assert stored.status.state == State.WARNING
    assert stored.status.description == "Something: error happened"


def test_retries_on_conflict():
    cr = _cr()
    client = ConflictingClient(2, cr)

    StatusHandler(client).update_to_ready(cr)

    assert client.update_calls == 3
    assert client.get("default", "test").status.state == State.READY


def test_gives_up_after_repeated_conflicts():
    cr = _cr()
    client = ConflictingClient(100, cr)

    with pytest.raises(ConflictError):
        StatusHandler(client).update_to_ready(cr)

    assert client.update_calls == 5
    assert client.get("default", "test").status.state == ""


def test_missing_object_is_an_error():
    cr = _cr()
    client = FakeIstioClient()

    with pytest.raises(KeyError):
        StatusHandler(client).update_to_ready(cr)