"""
Database subsystem for the player ledger.

Provides the async SQLAlchemy engine, session management and the ORM base
classes, mixins and column types used by the ledger models.
"""

from player_ledger.core.database.base import (
    Base,
    IdMixin,
    TimestampMixin,
    utc_now,
)
from player_ledger.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)
from player_ledger.core.database.types import UINT256_MAX, Uint256

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "utc_now",
    # Types
    "Uint256",
    "UINT256_MAX",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
