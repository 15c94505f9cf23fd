"""Report data models."""
