"""Kubernetes apply-and-settle services.

One applier per supported resource kind, the settlement watcher used by
kinds that converge asynchronously, and the dispatch engine that routes a
decoded manifest to its applier.
"""

from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier
from kube_deploy.services.kubernetes.configmap_applier import ConfigMapApplier
from kube_deploy.services.kubernetes.deployment_applier import DeploymentApplier
from kube_deploy.services.kubernetes.dispatch import (
    DispatchEngine,
    build_appliers,
    resolve_namespace,
)
from kube_deploy.services.kubernetes.ingress_applier import IngressApplier
from kube_deploy.services.kubernetes.service_applier import ServiceApplier
from kube_deploy.services.kubernetes.settlement import (
    SettlementResult,
    SettlementState,
    SettlementWatcher,
)

__all__ = [
    "ApplyOutcome",
    "ConfigMapApplier",
    "DeploymentApplier",
    "DispatchEngine",
    "IngressApplier",
    "K8sBaseApplier",
    "ServiceApplier",
    "SettlementResult",
    "SettlementState",
    "SettlementWatcher",
    "build_appliers",
    "resolve_namespace",
]
