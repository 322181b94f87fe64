"""
Audit query service.

Read side of the audit trail: per-account history, activity summaries and
retention cleanup over `audit_logs`.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from player_ledger.core.database.base import utc_now
from player_ledger.core.logging.logger import get_logger
from player_ledger.core.validation import InputValidator

if TYPE_CHECKING:
    from player_ledger.modules.audit.repository import AuditRepository

logger = get_logger(__name__)


class AuditService:
    """High-level audit queries."""

    def __init__(self, audit_repository: AuditRepository) -> None:
        self._audit_repo = audit_repository

    async def get_account_history(
        self,
        account: Any,
        limit: int = 100,
        event_kind: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Audit entries for `account`, newest first."""
        account = InputValidator.validate_address(account, "account")
        limit = InputValidator.validate_integer(limit, "limit", 1, 10_000)

        logs = await self._audit_repo.get_by_account(
            account, limit=limit, event_kind=event_kind
        )
        return [
            {
                "id": log.id,
                "event_kind": log.event_kind,
                "account": log.account,
                "caller": log.caller,
                "details": dict(log.details or {}),
                "created_at": log.created_at.isoformat() if log.created_at else None,
            }
            for log in logs
        ]

    async def get_account_summary(self, account: Any) -> Dict[str, Any]:
        account = InputValidator.validate_address(account, "account")
        counts = await self._audit_repo.count_by_kind(account)
        return {
            "account": account,
            "total_events": sum(counts.values()),
            "events": counts,
        }

    async def cleanup_old_logs(self, retention_days: int = 90) -> int:
        retention_days = InputValidator.validate_integer(
            retention_days, "retention_days", min_value=1
        )
        cutoff = utc_now() - timedelta(days=retention_days)
        removed = await self._audit_repo.delete_older_than(cutoff)
        logger.info(
            "Audit retention applied",
            extra={"retention_days": retention_days, "removed": removed},
        )
        return removed
