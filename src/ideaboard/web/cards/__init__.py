"""Cards API."""
