"""Clinic ledger: session persistence and patient debt lifecycle."""

__version__ = "0.1.0"
