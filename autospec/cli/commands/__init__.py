"""autospec CLI commands."""
