"""Grid services."""
