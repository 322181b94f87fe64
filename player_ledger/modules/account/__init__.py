"""Signature-gated account lifecycle."""

from .locks import AccountLockRegistry
from .service import AccountService

__all__ = ["AccountLockRegistry", "AccountService"]
