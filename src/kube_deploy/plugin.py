"""Plugin entry point: render, decode, apply and settle one manifest."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from kube_deploy.core.config import PluginSettings
from kube_deploy.integrations.kubernetes.client import KubernetesClient
from kube_deploy.integrations.kubernetes.config import KubeConfig
from kube_deploy.integrations.kubernetes.models.resources import decode_manifest
from kube_deploy.logging import get_logger
from kube_deploy.services.kubernetes.base import ApplyOutcome
from kube_deploy.services.kubernetes.dispatch import (
    DispatchEngine,
    build_appliers,
    resolve_namespace,
)
from kube_deploy.services.template import build_context, render_template_file

logger = get_logger(__name__)

ClientFactory = Callable[[KubeConfig], KubernetesClient]


class Plugin:
    """One invocation of the deploy step.

    Every step before connecting to the cluster (settings check, template
    rendering, manifest decoding) runs first, so those errors never cost a
    network call.

    Example:
        >>> settings = PluginSettings(template="k8s/service.yaml", kube=KubeConfig(...))
        >>> outcome = Plugin(settings).exec()
        >>> outcome.settlement.status
        'Updated: 10.0.0.5'
    """

    def __init__(
        self,
        settings: PluginSettings,
        *,
        environ: Mapping[str, str] | None = None,
        client_factory: ClientFactory = KubernetesClient,
    ) -> None:
        self._settings = settings
        self._environ = environ
        self._client_factory = client_factory

    def exec(self) -> ApplyOutcome:
        """Run the apply-and-settle sequence.

        Returns:
            The applier's outcome. A settlement timeout is reported in the
            outcome, not raised.

        Raises:
            DeployError: On any configuration, template, decode, unsupported
                kind, API or watch failure.
        """
        settings = self._settings
        settings.ensure_complete()

        context = build_context(self._environ)
        rendered = render_template_file(settings.template, context)
        descriptor = decode_manifest(rendered)
        namespace = resolve_namespace(settings.kube.namespace, descriptor)
        logger.info(
            "manifest_decoded",
            resource=descriptor.identifier,
            namespace=namespace,
            template=settings.template,
        )

        with self._client_factory(settings.kube) as client:
            version = client.get_cluster_version()
            logger.info("connected_to_cluster", server=settings.kube.server, version=version)

            engine = DispatchEngine(
                build_appliers(
                    client,
                    timeout=settings.kube.timeout,
                    config_map_file=settings.config_map_file,
                )
            )
            outcome = engine.dispatch(descriptor, namespace)

        if outcome.settlement is not None:
            logger.info(
                "settlement_finished",
                resource=outcome.resource,
                state=outcome.settlement.state.value,
                status=outcome.settlement.status,
            )
        return outcome
