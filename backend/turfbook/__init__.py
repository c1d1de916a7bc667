"""Turf slot reservation and booking service."""

__version__ = "1.0.0"
