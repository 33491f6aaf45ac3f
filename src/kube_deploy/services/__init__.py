"""Deploy step services."""
