"""Plugin settings with Pydantic validation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from kube_deploy.integrations.kubernetes.config import KubeConfig
from kube_deploy.integrations.kubernetes.exceptions import ConfigurationError

# Checked in this order; the first missing one is reported.
REQUIRED_KUBE_SETTINGS = ("server", "token", "ca")


class PluginSettings(BaseModel):
    """Complete settings for one plugin invocation."""

    model_config = ConfigDict(extra="forbid")

    template: str = ""
    config_map_file: str | None = None
    kube: KubeConfig = KubeConfig()

    def ensure_complete(self) -> None:
        """Check that every required setting is present.

        Raises:
            ConfigurationError: Naming the first missing setting.
        """
        for setting in REQUIRED_KUBE_SETTINGS:
            if not getattr(self.kube, setting):
                raise ConfigurationError(_missing(setting), setting=setting)
        if not self.template:
            raise ConfigurationError(_missing("template"), setting="template")


def _missing(setting: str) -> str:
    env_name = "PLUGIN_" + setting.upper().replace("-", "_")
    return f"{env_name} or settings.{setting} must be defined"
