"""Unit tests for the settlement watcher."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client import ApiException

from kube_deploy.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from kube_deploy.services.kubernetes.settlement import (
    DEPLOYMENT_POLICY,
    SERVICE_POLICY,
    SERVICE_SETTLE_ATTEMPTS,
    SettlementPolicy,
    SettlementState,
    SettlementWatcher,
    deployment_settled,
    describe_deployment,
    load_balancer_addresses,
)


def _service_watcher(
    client: MagicMock,
    *,
    timeout: int = 120,
    clock: Callable[[], float] | None = None,
) -> SettlementWatcher:
    kwargs: dict[str, Any] = {}
    if clock is not None:
        kwargs["clock"] = clock
    return SettlementWatcher(
        client,
        list_fn=client.core_v1.list_namespaced_service,
        read_fn=client.core_v1.read_namespaced_service,
        policy=SERVICE_POLICY,
        timeout=timeout,
        **kwargs,
    )


@pytest.mark.unit
@pytest.mark.kubernetes
class TestServiceSettlementFastPath:
    """Snapshot read already satisfies the predicate."""

    def test_returns_settled_without_consuming_events(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """Should settle from the snapshot and never read the stream."""
        watch = fake_watch([make_service(), make_service(ips=["10.9.9.9"])])
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service(
            ips=["10.0.0.5"]
        )

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.state is SettlementState.SETTLED
        assert result.settled
        assert result.status == "Updated: 10.0.0.5"
        assert result.attempts == 0
        assert watch.consumed == 0
        assert watch.stream_kwargs is None

    def test_releases_watch_on_fast_path(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """The subscription should be stopped even when no event was read."""
        watch = fake_watch()
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service(
            ips=["10.0.0.5"]
        )

        _service_watcher(mock_k8s_client).wait("web", "default")

        assert watch.stopped

    def test_opens_subscription_before_snapshot(
        self, mock_k8s_client: MagicMock, make_service: Any
    ) -> None:
        """The watch handle should be created before the snapshot read."""
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service(
            ips=["10.0.0.5"]
        )

        _service_watcher(mock_k8s_client).wait("web", "default")

        call_names = [c[0] for c in mock_k8s_client.mock_calls]
        assert call_names.index("new_watch") < call_names.index(
            "core_v1.read_namespaced_service"
        )


@pytest.mark.unit
@pytest.mark.kubernetes
class TestServiceSettlementEventStream:
    """Decisions made from watch events."""

    def test_settles_after_n_plus_one_observations(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """N pending events then a satisfying one should settle after N+1 observations."""
        events = [make_service() for _ in range(3)] + [make_service(ips=["10.0.0.7"])]
        watch = fake_watch(events)
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.state is SettlementState.SETTLED
        assert result.status == "Updated: 10.0.0.7"
        assert result.attempts == 4
        assert watch.consumed == 4

    def test_settles_on_event_right_at_ceiling(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """A satisfying event right after the ceiling's worth of pending ones still settles."""
        events = [make_service() for _ in range(SERVICE_SETTLE_ATTEMPTS)]
        events.append(make_service(ips=["10.0.0.8"]))
        mock_k8s_client.new_watch.return_value = fake_watch(events)
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.settled
        assert result.attempts == SERVICE_SETTLE_ATTEMPTS + 1

    def test_times_out_after_exceeding_attempt_ceiling(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """Eleven pending events against a ceiling of ten should time out without error."""
        watch = fake_watch([make_service() for _ in range(15)])
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.state is SettlementState.TIMED_OUT
        assert not result.settled
        assert result.attempts == 11
        assert "Exceeded 11 attempts" in result.status
        assert result.status.startswith("Service update failed")
        assert watch.consumed == 11
        assert watch.stopped
        assert watch.stream_closed

    def test_prefers_ip_and_falls_back_to_hostname(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """Status should list IPs, then hostnames for entries without an IP."""
        settled = make_service(ips=["10.0.0.5"], hostnames=["lb.example.com"])
        mock_k8s_client.new_watch.return_value = fake_watch([settled])
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.status == "Updated: 10.0.0.5, lb.example.com"

    def test_stream_is_scoped_to_resource(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """The watch should filter by name and resume from the snapshot's version."""
        watch = fake_watch([make_service(ips=["10.0.0.5"])])
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service(
            resource_version="4711"
        )

        _service_watcher(mock_k8s_client, timeout=90).wait("web", "apps")

        assert watch.list_fn is mock_k8s_client.core_v1.list_namespaced_service
        assert watch.stream_kwargs == {
            "namespace": "apps",
            "field_selector": "metadata.name=web",
            "timeout_seconds": 90,
            "resource_version": "4711",
        }
        mock_k8s_client.core_v1.read_namespaced_service.assert_called_once_with(
            name="web", namespace="apps"
        )

    def test_stream_ending_without_decision_times_out(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """A watch the server closes early should report a timeout status."""
        mock_k8s_client.new_watch.return_value = fake_watch([make_service(), make_service()])
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        result = _service_watcher(mock_k8s_client).wait("web", "default")

        assert result.state is SettlementState.TIMED_OUT
        assert result.attempts == 2
        assert "Watch closed after 2 attempts" in result.status

    def test_deadline_stops_slow_event_stream(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """Wall-clock deadline should end the wait before the attempt ceiling."""
        watch = fake_watch([make_service() for _ in range(5)])
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()
        ticks = iter([0.0, 50.0, 130.0])

        result = _service_watcher(mock_k8s_client, timeout=120, clock=lambda: next(ticks)).wait(
            "web", "default"
        )

        assert result.state is SettlementState.TIMED_OUT
        assert result.attempts == 2
        assert "Deadline of 120s passed after 2 attempts" in result.status
        assert watch.consumed == 2


@pytest.mark.unit
@pytest.mark.kubernetes
class TestServiceSettlementErrors:
    """Read and watch failures are fatal."""

    def test_snapshot_failure_is_raised(
        self, mock_k8s_client: MagicMock, fake_watch: Any
    ) -> None:
        """A failing snapshot read should raise and release the watch."""
        watch = fake_watch()
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )

        with pytest.raises(KubernetesError, match="Internal Server Error"):
            _service_watcher(mock_k8s_client).wait("web", "default")

        assert watch.stopped

    def test_snapshot_not_found_is_raised(self, mock_k8s_client: MagicMock) -> None:
        """A missing resource is an error here, not an absence signal."""
        mock_k8s_client.core_v1.read_namespaced_service.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(KubernetesNotFoundError):
            _service_watcher(mock_k8s_client).wait("web", "default")

    def test_watch_error_is_raised_and_stream_closed(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        """An error from the event stream should propagate after closing the stream."""
        watch = fake_watch(
            [make_service()], error=ApiException(status=500, reason="watch broke")
        )
        mock_k8s_client.new_watch.return_value = watch
        mock_k8s_client.core_v1.read_namespaced_service.return_value = make_service()

        with pytest.raises(KubernetesError, match="watch broke") as exc_info:
            _service_watcher(mock_k8s_client).wait("web", "default")

        assert exc_info.value.resource_type == "Service"
        assert watch.stopped
        assert watch.stream_closed


@pytest.mark.unit
@pytest.mark.kubernetes
class TestDeploymentPolicy:
    """Readiness rule for Deployments."""

    def test_settled_with_zero_unavailable(self, make_deployment: Any) -> None:
        assert deployment_settled(make_deployment(unavailable=0))

    def test_settled_when_unavailable_unset(self, make_deployment: Any) -> None:
        """The API omits unavailableReplicas when it is zero."""
        assert deployment_settled(make_deployment(unavailable=None))

    def test_not_settled_with_unavailable_replicas(self, make_deployment: Any) -> None:
        assert not deployment_settled(make_deployment(unavailable=1))

    def test_not_settled_before_controller_observes_generation(
        self, make_deployment: Any
    ) -> None:
        """A fresh status should not count as settled."""
        assert not deployment_settled(make_deployment(observed_generation=None))
        assert not deployment_settled(make_deployment(generation=3, observed_generation=2))

    def test_describe(self, make_deployment: Any) -> None:
        assert (
            describe_deployment(make_deployment(replicas=3))
            == "Deployment 'api' settled: 3/3 replicas available"
        )

    def test_watcher_uses_deployment_policy(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_deployment: Any
    ) -> None:
        """Deployment waits should settle once a rollout event reports no unavailable replicas."""
        events = [make_deployment(unavailable=2), make_deployment(unavailable=0)]
        mock_k8s_client.new_watch.return_value = fake_watch(events)
        mock_k8s_client.apps_v1.read_namespaced_deployment.return_value = make_deployment(
            unavailable=3
        )
        watcher = SettlementWatcher(
            mock_k8s_client,
            list_fn=mock_k8s_client.apps_v1.list_namespaced_deployment,
            read_fn=mock_k8s_client.apps_v1.read_namespaced_deployment,
            policy=DEPLOYMENT_POLICY,
            timeout=120,
        )

        result = watcher.wait("api", "default")

        assert result.settled
        assert result.attempts == 2


@pytest.mark.unit
@pytest.mark.kubernetes
class TestCustomPolicy:
    """The watcher only depends on the policy it is given."""

    def test_ceiling_comes_from_policy(
        self, mock_k8s_client: MagicMock, fake_watch: Any, make_service: Any
    ) -> None:
        policy = SettlementPolicy(
            resource_type="Service",
            is_settled=lambda obj: False,
            describe=lambda obj: "never",
            waiting_message="waiting",
            max_attempts=1,
        )
        mock_k8s_client.new_watch.return_value = fake_watch([make_service() for _ in range(5)])
        watcher = SettlementWatcher(
            mock_k8s_client,
            list_fn=mock_k8s_client.core_v1.list_namespaced_service,
            read_fn=mock_k8s_client.core_v1.read_namespaced_service,
            policy=policy,
            timeout=120,
        )

        result = watcher.wait("web", "default")

        assert result.state is SettlementState.TIMED_OUT
        assert result.attempts == 2


@pytest.mark.unit
class TestLoadBalancerAddresses:
    def test_no_status(self) -> None:
        assert load_balancer_addresses(MagicMock(status=None)) == []
