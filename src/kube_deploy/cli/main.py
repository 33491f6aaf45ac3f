"""Main CLI entry point using Typer.

Every option can be set from the ``PLUGIN_*`` variable a CI runner exports
for the matching plugin setting (``config-map-file`` → ``PLUGIN_CONFIG_MAP_FILE``).
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from kube_deploy import __version__
from kube_deploy.core.config import PluginSettings
from kube_deploy.integrations.kubernetes.config import DEFAULT_SETTLE_TIMEOUT, KubeConfig
from kube_deploy.integrations.kubernetes.exceptions import DeployError
from kube_deploy.logging import configure_logging, get_logger
from kube_deploy.plugin import Plugin

app = typer.Typer(
    name="kube-deploy",
    help="Apply a templated Kubernetes manifest and wait for it to settle.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kube-deploy version {__version__}")
        raise typer.Exit()


@app.command()
def deploy(
    server: str = typer.Option("", "--server", envvar="PLUGIN_SERVER", help="API server URL."),
    token: str = typer.Option("", "--token", envvar="PLUGIN_TOKEN", help="Bearer token."),
    ca: str = typer.Option(
        "", "--ca", envvar="PLUGIN_CA", help="CA certificate, PEM or base64-encoded PEM."
    ),
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        envvar="PLUGIN_NAMESPACE",
        help="Target namespace; overrides the manifest's namespace.",
    ),
    template: str = typer.Option(
        "", "--template", envvar="PLUGIN_TEMPLATE", help="Path to the manifest template."
    ),
    config_map_file: str | None = typer.Option(
        None,
        "--config-map-file",
        envvar="PLUGIN_CONFIG_MAP_FILE",
        help="File uploaded as the ConfigMap payload (ConfigMap manifests only).",
    ),
    insecure_skip_tls_verify: bool = typer.Option(
        False,
        "--insecure-skip-tls-verify",
        envvar="PLUGIN_INSECURE_SKIP_TLS_VERIFY",
        help="Skip API server certificate verification.",
    ),
    timeout: int = typer.Option(
        DEFAULT_SETTLE_TIMEOUT,
        "--timeout",
        envvar="PLUGIN_TIMEOUT",
        min=1,
        help="Seconds to wait for the resource to settle.",
    ),
    debug: bool = typer.Option(False, "--debug", envvar="PLUGIN_DEBUG", help="Debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors."),
    json_logs: bool = typer.Option(
        False, "--json-logs", envvar="PLUGIN_JSON_LOGS", help="Log JSON lines."
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Render the template, apply the resource and wait until it settles."""
    configure_logging(debug=debug, quiet=quiet, json_output=json_logs)

    try:
        settings = PluginSettings(
            template=template,
            config_map_file=config_map_file or None,
            kube=KubeConfig(
                server=server,
                token=token,
                ca=ca,
                namespace=namespace,
                insecure_skip_tls_verify=insecure_skip_tls_verify,
                timeout=timeout,
            ),
        )
    except ValidationError as e:
        err_console.print(f"[red]Invalid settings:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    try:
        outcome = Plugin(settings).exec()
    except DeployError as e:
        logger.error("deploy_failed", error_type=type(e).__name__, error=str(e))
        err_console.print(f"[red]Deploy failed:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    settlement = outcome.settlement
    if settlement is None:
        console.print(f"[green]{outcome.resource} {outcome.action}[/green] in {outcome.namespace}")
    elif settlement.settled:
        console.print(f"[green]{escape(settlement.status)}[/green]")
    else:
        console.print(f"[yellow]{escape(settlement.status)}[/yellow]")


if __name__ == "__main__":
    app()
