"""Application wiring."""

from .application_context import LedgerApplication

__all__ = ["LedgerApplication"]
