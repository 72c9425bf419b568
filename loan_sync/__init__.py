"""Offline-first loan portfolio tracking with cross-device reconciliation."""

__version__ = "0.1.0"
