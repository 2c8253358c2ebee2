"""Draft order pricing service."""

__version__ = "1.0.0"
