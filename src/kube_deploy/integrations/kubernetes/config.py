"""Cluster connection settings."""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, ConfigDict, field_validator

from kube_deploy.integrations.kubernetes.exceptions import ConfigurationError

DEFAULT_NAMESPACE = "default"
DEFAULT_SETTLE_TIMEOUT = 120
PEM_MARKER = "-----BEGIN"


class KubeConfig(BaseModel):
    """Connection settings for the target cluster.

    ``ca`` accepts either PEM text or base64-encoded PEM, which is how CI
    secrets usually carry certificate data.
    """

    model_config = ConfigDict(extra="forbid")

    server: str = ""
    token: str = ""
    ca: str = ""
    namespace: str | None = None
    insecure_skip_tls_verify: bool = False
    timeout: int = DEFAULT_SETTLE_TIMEOUT

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("namespace")
    @classmethod
    def blank_namespace_is_unset(cls, v: str | None) -> str | None:
        """Treat an empty namespace setting as not configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("server", "token", "ca")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    def ca_data(self) -> bytes:
        """Return the CA certificate as PEM bytes.

        Raises:
            ConfigurationError: If ``ca`` is neither PEM nor valid base64.
        """
        if PEM_MARKER in self.ca:
            return self.ca.encode("utf-8")
        try:
            return base64.b64decode(self.ca, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(
                "PLUGIN_CA must be PEM or base64-encoded PEM data", setting="ca"
            ) from e
