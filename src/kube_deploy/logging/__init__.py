"""Logging configuration for kube_deploy."""

from kube_deploy.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
