"""Command-line interface for IDE configuration conversion."""
