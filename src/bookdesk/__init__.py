"""Bookdesk - library catalogue and reservation desk."""

__version__ = "0.1.0"
