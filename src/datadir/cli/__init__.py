"""Command-line interface for the data directory cache."""
