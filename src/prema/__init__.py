"""Prema client core - session management and API client for the Prema dating app."""

__version__ = "0.3.0"
