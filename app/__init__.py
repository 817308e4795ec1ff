"""Content intake service."""
