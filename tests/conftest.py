import os
import sys

import pytest
from docker.errors import NotFound

# Ensure project root is importable (so `import main` / `import cli` work without installing)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from dts import db  # noqa: E402
from dts.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def journal(tmp_path, monkeypatch):
    """Point the sqlite journal at a per-test file."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "journal.db")))
    db.init_db()
    return db


class FakeContainer:
    def __init__(self, id, name, labels=None, status="running", ports=None):
        self.id = id
        self.name = name
        self.labels = labels or {}
        self.status = status
        self.attrs = {"Name": f"/{name}", "NetworkSettings": {"Ports": ports or {}}}


class FakeContainers:
    def __init__(self, containers=None, list_error=None):
        self.by_id = {c.id: c for c in containers or []}
        self.list_error = list_error
        self.list_calls = []

    def list(self, all=False, filters=None):
        self.list_calls.append(filters)
        if self.list_error is not None:
            raise self.list_error
        return list(self.by_id.values())

    def get(self, container_id):
        try:
            return self.by_id[container_id]
        except KeyError:
            raise NotFound(f"No such container: {container_id}")


class FakeDockerClient:
    """Shaped like docker.DockerClient for the calls the pipeline makes."""

    def __init__(self, containers=None, stream=None, stream_error=None, list_error=None):
        self.containers = FakeContainers(containers, list_error=list_error)
        self.stream = list(stream or [])
        self.stream_error = stream_error
        self.events_calls = []

    def ping(self):
        return True

    def events(self, decode=False, filters=None):
        self.events_calls.append(filters)

        def gen():
            for raw in self.stream:
                yield raw
            if self.stream_error is not None:
                raise self.stream_error

        return gen()


def docker_event(action, container_id, service=None, opt_in="true", **attrs):
    attributes = dict(attrs)
    if opt_in is not None:
        attributes["scrape_target"] = opt_in
    if service is not None:
        attributes["com.docker.compose.service"] = service
    return {
        "Type": "container",
        "Action": action,
        "status": action,
        "id": container_id,
        "Actor": {"ID": container_id, "Attributes": attributes},
    }


def metrics_ports(host_port):
    return {"2112/tcp": [{"HostIp": "0.0.0.0", "HostPort": str(host_port)}]}


@pytest.fixture
def fakes():
    """Expose the fake docker helpers to test modules."""

    class _Fakes:
        Container = FakeContainer
        Client = FakeDockerClient
        event = staticmethod(docker_event)
        ports = staticmethod(metrics_ports)

    return _Fakes
