"""Apply a templated Kubernetes manifest from a CI pipeline and wait for it to settle."""

__version__ = "0.1.0"
