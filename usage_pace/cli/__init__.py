"""Command-line interface for usage-pace."""
