"""Shared helpers used across scenery packages."""
