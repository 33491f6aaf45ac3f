"""Typed resource descriptors decoded from manifest text.

A manifest decodes to exactly one descriptor subclass, selected by its
``apiVersion``/``kind`` pair. Pairs outside the supported set decode to
:class:`UnsupportedResource` so the dispatcher can report them.
"""

from __future__ import annotations

import copy
from enum import StrEnum
from typing import Any, ClassVar

import yaml
from pydantic import BaseModel, ConfigDict, Field

from kube_deploy.integrations.kubernetes.exceptions import ManifestDecodeError


class ResourceKind(StrEnum):
    """Closed set of descriptor variants."""

    DEPLOYMENT = "Deployment"
    SERVICE = "Service"
    CONFIG_MAP = "ConfigMap"
    INGRESS = "Ingress"
    UNSUPPORTED = "Unsupported"


class ResourceDescriptor(BaseModel):
    """Decoded manifest for one resource.

    ``manifest`` holds the full document and is the body sent to the API
    server; ``name`` and ``namespace`` are lifted from its metadata.
    """

    model_config = ConfigDict(extra="forbid")

    api_version: str = Field(description="Manifest apiVersion")
    kind: str = Field(description="Manifest kind")
    name: str = Field(default="", description="metadata.name")
    namespace: str | None = Field(default=None, description="metadata.namespace")
    manifest: dict[str, Any] = Field(default_factory=dict)

    resource_kind: ClassVar[ResourceKind] = ResourceKind.UNSUPPORTED

    @property
    def identifier(self) -> str:
        """Return a ``Kind/name`` identifier."""
        return f"{self.kind}/{self.name or 'unnamed'}"

    def get_namespace(self) -> str | None:
        """Return the namespace declared in the manifest, if any."""
        return self.namespace or None

    def body_for(self, namespace: str) -> dict[str, Any]:
        """Return a copy of the manifest targeted at *namespace*."""
        body = copy.deepcopy(self.manifest)
        body.setdefault("metadata", {})["namespace"] = namespace
        return body


class DeploymentResource(ResourceDescriptor):
    resource_kind: ClassVar[ResourceKind] = ResourceKind.DEPLOYMENT


class ServiceResource(ResourceDescriptor):
    resource_kind: ClassVar[ResourceKind] = ResourceKind.SERVICE


class ConfigMapResource(ResourceDescriptor):
    resource_kind: ClassVar[ResourceKind] = ResourceKind.CONFIG_MAP


class IngressResource(ResourceDescriptor):
    resource_kind: ClassVar[ResourceKind] = ResourceKind.INGRESS


class UnsupportedResource(ResourceDescriptor):
    """A well-formed manifest of a kind this step cannot apply."""

    resource_kind: ClassVar[ResourceKind] = ResourceKind.UNSUPPORTED

    @property
    def type_name(self) -> str:
        return f"{self.api_version}/{self.kind}"


SUPPORTED_TYPES: dict[tuple[str, str], type[ResourceDescriptor]] = {
    ("apps/v1", "Deployment"): DeploymentResource,
    ("v1", "Service"): ServiceResource,
    ("v1", "ConfigMap"): ConfigMapResource,
    ("networking.k8s.io/v1", "Ingress"): IngressResource,
}


def decode_manifest(text: str) -> ResourceDescriptor:
    """Decode rendered manifest text into a resource descriptor.

    Args:
        text: YAML text holding exactly one document.

    Returns:
        The descriptor matching the manifest's apiVersion and kind.

    Raises:
        ManifestDecodeError: If the text is not YAML, holds more or fewer
            than one document, or lacks ``apiVersion``/``kind``.
    """
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as e:
        raise ManifestDecodeError(f"Failed to parse manifest YAML: {e}") from e

    if len(documents) != 1:
        raise ManifestDecodeError(f"Expected exactly one manifest document, found {len(documents)}")

    manifest = documents[0]
    if not isinstance(manifest, dict):
        raise ManifestDecodeError(f"Manifest must be a mapping, got {type(manifest).__name__}")

    api_version = manifest.get("apiVersion")
    kind = manifest.get("kind")
    if not isinstance(api_version, str) or not api_version:
        raise ManifestDecodeError("Manifest is missing a string apiVersion")
    if not isinstance(kind, str) or not kind:
        raise ManifestDecodeError("Manifest is missing a string kind")

    metadata = manifest.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ManifestDecodeError(f"metadata must be a mapping, got {type(metadata).__name__}")

    descriptor_cls = SUPPORTED_TYPES.get((api_version, kind), UnsupportedResource)
    name = metadata.get("name")
    if descriptor_cls is not UnsupportedResource and not isinstance(name, str):
        raise ManifestDecodeError(f"{kind} manifest is missing metadata.name")

    namespace = metadata.get("namespace")
    return descriptor_cls(
        api_version=api_version,
        kind=kind,
        name=str(name or ""),
        namespace=str(namespace) if namespace else None,
        manifest=manifest,
    )
