"""Geometry, file and validation helpers."""
