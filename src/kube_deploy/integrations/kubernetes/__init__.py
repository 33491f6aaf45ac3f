"""Kubernetes integration - API client, connection settings and exceptions."""

from kube_deploy.integrations.kubernetes.client import KubernetesClient
from kube_deploy.integrations.kubernetes.config import DEFAULT_NAMESPACE, KubeConfig
from kube_deploy.integrations.kubernetes.exceptions import (
    ConfigurationError,
    DeployError,
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
    ManifestDecodeError,
    TemplateRenderError,
    UnsupportedResourceKindError,
)

__all__ = [
    "DEFAULT_NAMESPACE",
    "ConfigurationError",
    "DeployError",
    "KubeConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesValidationError",
    "ManifestDecodeError",
    "TemplateRenderError",
    "UnsupportedResourceKindError",
]
