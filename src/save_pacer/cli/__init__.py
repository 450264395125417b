"""Command-line interface for save-pacer."""
