"""Command-line interface for the pipeline lens."""
