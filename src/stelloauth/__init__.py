"""Stellantis OAuth helper: retrieve portal authorization codes headlessly."""

__version__ = "0.3.0"
