"""ConfigMap applier.

Uploads one local file as the ConfigMap's only binary entry, keyed by the
file path. There is no existence check: applying a ConfigMap that already
exists fails with a conflict.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import TYPE_CHECKING

from kube_deploy.integrations.kubernetes.exceptions import ConfigurationError
from kube_deploy.services.kubernetes.base import ApplyOutcome, K8sBaseApplier

if TYPE_CHECKING:
    from kube_deploy.integrations.kubernetes.client import KubernetesClient
    from kube_deploy.integrations.kubernetes.models.resources import ResourceDescriptor


class ConfigMapApplier(K8sBaseApplier):
    """Create a ConfigMap carrying the contents of one file."""

    _entity_name = "ConfigMap"

    def __init__(self, client: KubernetesClient, *, config_map_file: str | None = None) -> None:
        super().__init__(client)
        self._config_map_file = config_map_file

    def apply(self, descriptor: ResourceDescriptor, namespace: str) -> ApplyOutcome:
        """Attach the file payload and create the ConfigMap.

        Raises:
            ConfigurationError: If no file is configured or it cannot be read.
            KubernetesConflictError: If the ConfigMap already exists.
            KubernetesError: For any other API failure.
        """
        path = self._config_map_file
        if not path:
            raise ConfigurationError(
                "PLUGIN_CONFIG_MAP_FILE or settings.config-map-file must be defined "
                "to apply a ConfigMap",
                setting="config-map-file",
            )

        self._log.info("reading_config_map_file", path=path)
        try:
            contents = Path(path).read_bytes()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config map file {path}: {e}", setting="config-map-file"
            ) from e

        body = descriptor.body_for(namespace)
        body["binaryData"] = {path: base64.b64encode(contents).decode("ascii")}

        self._log.info(
            "creating_config_map", name=descriptor.name, namespace=namespace, size=len(contents)
        )
        try:
            self._client.core_v1.create_namespaced_config_map(namespace=namespace, body=body)
        except Exception as e:
            self._handle_api_error(e, descriptor.name, namespace)
        self._log.info("created_config_map", name=descriptor.name, namespace=namespace)
        return ApplyOutcome(resource=descriptor.identifier, namespace=namespace, action="created")
