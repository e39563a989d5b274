"""Command-line interface for GameCollector."""
