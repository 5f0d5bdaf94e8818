"""Bundled conversion modules."""
