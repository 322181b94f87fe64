"""
Database Models Package
=======================

SQLAlchemy ORM models for the player ledger. Schema only; all rules live in
the domain and service layers.

- account: liveness flag and packed balance/progression words
- holdings: owned items, owned fragments, league records
- audit: append-only audit log
"""

from player_ledger.core.database.base import Base

from .account import AccountLedger
from .audit import AuditLog
from .holdings import LeagueRecord, OwnedFragmentRecord, OwnedItemRecord

__all__ = [
    "Base",
    "AccountLedger",
    "OwnedItemRecord",
    "OwnedFragmentRecord",
    "LeagueRecord",
    "AuditLog",
]
