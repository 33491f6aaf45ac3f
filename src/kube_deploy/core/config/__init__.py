"""Configuration management with Pydantic validation."""

from kube_deploy.core.config.models import PluginSettings

__all__ = ["PluginSettings"]
