from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

import docker
import requests
from docker.errors import DockerException, StreamParseError
from urllib3.exceptions import ProtocolError

from .settings import settings


# docker-py lets requests' transport errors (timeouts, refused sockets) escape
# unwrapped, so callers catch both families.
DOCKER_ERRORS = (DockerException, requests.RequestException)

# A long-lived event stream also surfaces raw urllib3 errors when the
# connection drops and StreamParseError on undecodable chunks.
STREAM_ERRORS = DOCKER_ERRORS + (ProtocolError, StreamParseError)

# Docker event names the stream subscribes to. "running" is synthetic.
STREAM_ACTIONS = ("start", "unpause", "stop", "die")


class PortNotPublished(Exception):
    pass


@dataclass(frozen=True)
class WorkloadRef:
    id: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)
    running: bool = True


def job_name(attributes: dict[str, str] | None, container_name: str | None = None) -> str:
    """Job key for a container: compose service label, else its container name."""
    attributes = attributes or {}
    service = (attributes.get(settings.service_label) or "").strip()
    if service:
        return service
    name = container_name or attributes.get("name") or ""
    return name.strip().lstrip("/")


class ContainerRuntime:
    """Thin wrapper around the docker SDK exposing what the pipeline consumes."""

    def __init__(self, client: Any | None = None, timeout_s: float | None = None):
        self._client = client
        self.timeout_s = settings.docker_timeout_s if timeout_s is None else timeout_s

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = docker.from_env(timeout=self.timeout_s)
        return self._client

    def available(self) -> bool:
        try:
            self.client.ping()
            return True
        except DOCKER_ERRORS:
            return False

    def list_workloads(self, label: str | None = None) -> list[WorkloadRef]:
        """Running containers carrying `label` (any value)."""
        label = label or settings.opt_in_label
        containers = self.client.containers.list(filters={"label": [label]})
        out: list[WorkloadRef] = []
        for c in containers:
            out.append(
                WorkloadRef(
                    id=c.id,
                    name=c.name,
                    labels=dict(c.labels or {}),
                    running=c.status == "running",
                )
            )
        return out

    def published_address(self, container_id: str) -> str:
        """host:port under which the container's metrics port is published.

        Raises PortNotPublished when the port has no host mapping, docker.errors.NotFound
        when the container is gone.
        """
        cont = self.client.containers.get(container_id)
        ports = (cont.attrs.get("NetworkSettings") or {}).get("Ports") or {}
        bindings = ports.get(settings.metrics_port) or []
        for b in bindings:
            host_port = (b or {}).get("HostPort")
            if host_port:
                return f"{settings.docker_host_address}:{host_port}"
        raise PortNotPublished(f"port {settings.metrics_port} not published by {container_id[:12]}")

    def events(self, label: str | None = None) -> Iterator[dict[str, Any]]:
        """Decoded container lifecycle events for containers carrying `label`.

        Label values are not filtered by the daemon; callers parse them.
        The iterator ends (or raises STREAM_ERRORS) when the connection to
        the daemon breaks.
        """
        label = label or settings.opt_in_label
        filters = {
            "type": "container",
            "event": list(STREAM_ACTIONS),
            "label": [label],
        }
        return self.client.events(decode=True, filters=filters)
