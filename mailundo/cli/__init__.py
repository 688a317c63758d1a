"""Command-line interface for mailundo."""
