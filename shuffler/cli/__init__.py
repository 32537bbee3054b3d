"""Command line and terminal UI for the shuffler."""
