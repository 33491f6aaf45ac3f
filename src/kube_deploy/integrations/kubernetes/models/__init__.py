"""Kubernetes resource descriptor models."""

from kube_deploy.integrations.kubernetes.models.resources import (
    ConfigMapResource,
    DeploymentResource,
    IngressResource,
    ResourceDescriptor,
    ResourceKind,
    ServiceResource,
    UnsupportedResource,
    decode_manifest,
)

__all__ = [
    "ConfigMapResource",
    "DeploymentResource",
    "IngressResource",
    "ResourceDescriptor",
    "ResourceKind",
    "ServiceResource",
    "UnsupportedResource",
    "decode_manifest",
]
