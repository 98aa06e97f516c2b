"""Command-line interface for bookmark-recall."""
