"""Per-account ledger storage and admin-gated ledger writes."""

from .service import LedgerService
from .store import LedgerStore

__all__ = ["LedgerService", "LedgerStore"]
