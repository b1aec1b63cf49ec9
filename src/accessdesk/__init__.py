"""Staged entitlement editing for the access administration console."""

__version__ = "0.1.0"
