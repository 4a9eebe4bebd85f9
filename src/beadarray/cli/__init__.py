"""Command line interface for beadarray."""
