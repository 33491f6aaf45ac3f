"""Shared fixtures for Kubernetes service tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client import (
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStatus,
    V1LabelSelector,
    V1LoadBalancerIngress,
    V1LoadBalancerStatus,
    V1ObjectMeta,
    V1PodTemplateSpec,
    V1Service,
    V1ServiceStatus,
)

from kube_deploy.integrations.kubernetes.client import KubernetesClient


class FakeWatch:
    """Stand-in for ``kubernetes.watch.Watch`` replaying a fixed event list.

    Records the stream arguments, how many events were consumed, and
    whether the watch was stopped and its stream closed.
    """

    def __init__(self, objects: list[Any] | None = None, error: Exception | None = None) -> None:
        self.objects = list(objects or [])
        self.error = error
        self.stream_kwargs: dict[str, Any] | None = None
        self.list_fn: Any = None
        self.consumed = 0
        self.stopped = False
        self.stream_closed = False

    def stream(self, func: Any, **kwargs: Any) -> Iterator[dict[str, Any]]:
        self.list_fn = func
        self.stream_kwargs = kwargs
        return self._events()

    def _events(self) -> Iterator[dict[str, Any]]:
        try:
            for obj in self.objects:
                self.consumed += 1
                yield {"type": "MODIFIED", "object": obj}
            if self.error is not None:
                raise self.error
        finally:
            self.stream_closed = True

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client with real error translation.

    API groups (core_v1, apps_v1, networking_v1) are auto-created MagicMocks;
    ``new_watch`` returns a :class:`FakeWatch` with no events.
    """
    mock_client = MagicMock()
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    mock_client.new_watch.return_value = FakeWatch()
    return mock_client


def _make_service(
    name: str = "web",
    *,
    ips: list[str] | None = None,
    hostnames: list[str] | None = None,
    resource_version: str = "100",
) -> V1Service:
    """Build a Service whose load balancer has the given ingress entries."""
    ingress = [V1LoadBalancerIngress(ip=ip) for ip in ips or []]
    ingress += [V1LoadBalancerIngress(hostname=host) for host in hostnames or []]
    return V1Service(
        metadata=V1ObjectMeta(name=name, namespace="default", resource_version=resource_version),
        status=V1ServiceStatus(load_balancer=V1LoadBalancerStatus(ingress=ingress or None)),
    )


def _make_deployment(
    name: str = "api",
    *,
    replicas: int = 3,
    unavailable: int | None = 0,
    generation: int = 2,
    observed_generation: int | None = 2,
    resource_version: str = "200",
) -> V1Deployment:
    """Build a Deployment with the given rollout status."""
    available = replicas - (unavailable or 0)
    return V1Deployment(
        metadata=V1ObjectMeta(
            name=name,
            namespace="default",
            generation=generation,
            resource_version=resource_version,
        ),
        spec=V1DeploymentSpec(
            replicas=replicas,
            selector=V1LabelSelector(match_labels={"app": name}),
            template=V1PodTemplateSpec(),
        ),
        status=V1DeploymentStatus(
            observed_generation=observed_generation,
            unavailable_replicas=unavailable,
            available_replicas=available,
            replicas=replicas,
        ),
    )


@pytest.fixture
def fake_watch() -> type[FakeWatch]:
    """Return the FakeWatch class for building watches with scripted events."""
    return FakeWatch


@pytest.fixture
def make_service() -> Any:
    """Return a factory for V1Service objects with load balancer status."""
    return _make_service


@pytest.fixture
def make_deployment() -> Any:
    """Return a factory for V1Deployment objects with rollout status."""
    return _make_deployment
