"""Cluster integrations."""
