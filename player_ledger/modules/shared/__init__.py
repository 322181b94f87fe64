"""
Shared building blocks for ledger domain modules.

Exports the domain exception hierarchy plus the service and repository
base classes every module builds on.
"""

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    InvalidAdminSignatureError,
    InvalidPlayerSignatureError,
    LedgerDomainException,
    NotAdminError,
    NotSelfOrAdminError,
    PackedValueOverflowError,
    ValidationError,
)

__all__ = [
    # Base classes
    "BaseRepository",
    "BaseService",
    # Exceptions
    "LedgerDomainException",
    "InvalidAdminSignatureError",
    "InvalidPlayerSignatureError",
    "AccountAlreadyExistsError",
    "AccountNotFoundError",
    "NotSelfOrAdminError",
    "NotAdminError",
    "ValidationError",
    "PackedValueOverflowError",
]
