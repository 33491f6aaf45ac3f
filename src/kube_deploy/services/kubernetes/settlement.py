"""Settlement watcher.

Blocks until one named resource satisfies a kind-specific readiness
predicate, using a snapshot read as a fast path and a watch stream as the
primary signal. Waiting is bounded twice: by an observed-event ceiling and
by a wall-clock deadline. Running out of either is a timeout *status*, not
an error; failures to read or watch are raised.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from kubernetes.watch import Watch

    from kube_deploy.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

SERVICE_SETTLE_ATTEMPTS = 10
DEPLOYMENT_SETTLE_ATTEMPTS = 30


class SettlementState(StrEnum):
    """Terminal state of one wait."""

    SETTLED = "settled"
    TIMED_OUT = "timed_out"


@dataclass
class SettlementResult:
    """Outcome of a wait.

    Attributes:
        status: Human-readable terminal message.
        state: Whether the resource settled or the wait ran out.
        attempts: Number of watch events observed (0 on the fast path).
    """

    status: str
    state: SettlementState
    attempts: int = 0

    @property
    def settled(self) -> bool:
        return self.state is SettlementState.SETTLED


@dataclass(frozen=True)
class SettlementPolicy:
    """Readiness rule for one resource kind."""

    resource_type: str
    is_settled: Callable[[Any], bool]
    describe: Callable[[Any], str]
    waiting_message: str
    max_attempts: int


def _safe_get(obj: Any, *attrs: str, default: Any = None) -> Any:
    """Safely traverse nested attributes on kubernetes SDK objects."""
    current = obj
    for attr in attrs:
        if current is None:
            return default
        current = getattr(current, attr, None)
    return current if current is not None else default


# =========================================================================
# Service
# =========================================================================


def load_balancer_ingress(service: Any) -> list[Any]:
    """Return the load balancer ingress entries assigned to a Service."""
    return list(_safe_get(service, "status", "load_balancer", "ingress", default=[]))


def load_balancer_addresses(service: Any) -> list[str]:
    """Return each ingress entry's IP, or its hostname when the IP is empty."""
    addresses = []
    for entry in load_balancer_ingress(service):
        address = getattr(entry, "ip", None) or getattr(entry, "hostname", None)
        if address:
            addresses.append(address)
    return addresses


def service_settled(service: Any) -> bool:
    return len(load_balancer_ingress(service)) > 0


def describe_service(service: Any) -> str:
    return f"Updated: {', '.join(load_balancer_addresses(service))}"


# =========================================================================
# Deployment
# =========================================================================


def deployment_settled(deployment: Any) -> bool:
    """Return True once the controller has seen the current spec and no replica is unavailable.

    A freshly created Deployment has an empty status, so the observed
    generation must catch up before zero unavailable replicas means anything.
    """
    generation = _safe_get(deployment, "metadata", "generation", default=0)
    observed = _safe_get(deployment, "status", "observed_generation")
    if observed is None or observed < generation:
        return False
    return _safe_get(deployment, "status", "unavailable_replicas", default=0) == 0


def describe_deployment(deployment: Any) -> str:
    name = _safe_get(deployment, "metadata", "name", default="")
    desired = _safe_get(deployment, "spec", "replicas", default=0)
    available = _safe_get(deployment, "status", "available_replicas", default=0)
    return f"Deployment '{name}' settled: {available}/{desired} replicas available"


SERVICE_POLICY = SettlementPolicy(
    resource_type="Service",
    is_settled=service_settled,
    describe=describe_service,
    waiting_message="waiting_for_load_balancer",
    max_attempts=SERVICE_SETTLE_ATTEMPTS,
)

DEPLOYMENT_POLICY = SettlementPolicy(
    resource_type="Deployment",
    is_settled=deployment_settled,
    describe=describe_deployment,
    waiting_message="waiting_for_available_replicas",
    max_attempts=DEPLOYMENT_SETTLE_ATTEMPTS,
)


# =========================================================================
# Watch subscription
# =========================================================================


class WatchSubscription:
    """Watch stream scoped to one named resource.

    Use as a context manager: the watch is stopped and its HTTP response
    released on every exit path.
    """

    def __init__(
        self,
        watch: Watch,
        list_fn: Callable[..., Any],
        name: str,
        namespace: str,
        timeout_seconds: int,
    ) -> None:
        self._watch = watch
        self._list_fn = list_fn
        self._name = name
        self._namespace = namespace
        self._timeout_seconds = timeout_seconds
        self._stream: Any = None

    @property
    def field_selector(self) -> str:
        return f"metadata.name={self._name}"

    def events(self, resource_version: str | None = None) -> Iterator[Any]:
        """Yield the resource object carried by each watch event.

        Args:
            resource_version: Start after this version so that changes made
                since a snapshot read are not missed.
        """
        kwargs: dict[str, Any] = {
            "namespace": self._namespace,
            "field_selector": self.field_selector,
            "timeout_seconds": self._timeout_seconds,
        }
        if resource_version:
            kwargs["resource_version"] = resource_version
        self._stream = self._watch.stream(self._list_fn, **kwargs)
        for event in self._stream:
            yield event["object"]

    def close(self) -> None:
        self._watch.stop()
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> WatchSubscription:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# =========================================================================
# Watcher
# =========================================================================


class SettlementWatcher:
    """Wait for one resource kind to settle.

    Example:
        >>> watcher = SettlementWatcher(
        ...     client,
        ...     list_fn=client.core_v1.list_namespaced_service,
        ...     read_fn=client.core_v1.read_namespaced_service,
        ...     policy=SERVICE_POLICY,
        ...     timeout=120,
        ... )
        >>> watcher.wait("web", "default").status
        'Updated: 10.0.0.5'
    """

    def __init__(
        self,
        client: KubernetesClient,
        *,
        list_fn: Callable[..., Any],
        read_fn: Callable[..., Any],
        policy: SettlementPolicy,
        timeout: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._list_fn = list_fn
        self._read_fn = read_fn
        self._policy = policy
        self._timeout = timeout
        self._clock = clock
        self._log = logger.bind(entity=policy.resource_type)

    def wait(self, name: str, namespace: str) -> SettlementResult:
        """Block until *name* settles, the attempt ceiling is passed, or the deadline expires.

        Raises:
            KubernetesError: If the snapshot read or the watch stream fails.
        """
        policy = self._policy
        deadline = self._clock() + self._timeout
        log = self._log.bind(name=name, namespace=namespace)

        with WatchSubscription(
            self._client.new_watch(),
            self._list_fn,
            name,
            namespace,
            timeout_seconds=self._timeout,
        ) as subscription:
            try:
                snapshot = self._read_fn(name=name, namespace=namespace)
            except Exception as e:
                raise self._translate(e, name, namespace) from e

            log.info(policy.waiting_message)
            if policy.is_settled(snapshot):
                return SettlementResult(policy.describe(snapshot), SettlementState.SETTLED)

            attempts = 0
            try:
                for obj in subscription.events(_resource_version(snapshot)):
                    attempts += 1
                    if policy.is_settled(obj):
                        return SettlementResult(
                            policy.describe(obj), SettlementState.SETTLED, attempts
                        )
                    if attempts > policy.max_attempts:
                        return self._timed_out(
                            f"{policy.resource_type} update failed. "
                            f"Exceeded {attempts} attempts",
                            attempts,
                        )
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        return self._timed_out(
                            f"{policy.resource_type} update failed. "
                            f"Deadline of {self._timeout}s passed after {attempts} attempts",
                            attempts,
                        )
                    log.info(
                        policy.waiting_message,
                        attempts=attempts,
                        remaining_seconds=math.ceil(remaining),
                    )
            except Exception as e:
                raise self._translate(e, name, namespace) from e

        return self._timed_out(
            f"{policy.resource_type} update failed. "
            f"Watch closed after {attempts} attempts without settling",
            attempts,
        )

    def _timed_out(self, status: str, attempts: int) -> SettlementResult:
        self._log.warning("settlement_timed_out", attempts=attempts, status=status)
        return SettlementResult(status, SettlementState.TIMED_OUT, attempts)

    def _translate(self, e: Exception, name: str, namespace: str) -> Exception:
        return self._client.translate_api_exception(
            e,
            resource_type=self._policy.resource_type,
            resource_name=name,
            namespace=namespace,
        )


def _resource_version(obj: Any) -> str | None:
    version = _safe_get(obj, "metadata", "resource_version")
    return version if isinstance(version, str) else None
