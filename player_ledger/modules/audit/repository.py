"""
Audit Log Repository
====================

Data access for `audit_logs`. Unlike the per-account repositories, which
run inside a caller's transaction, audit writes and queries open their own
session: an audit row is written only after the mutation it describes has
committed.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError

from player_ledger.core.database.service import DatabaseService
from player_ledger.core.exceptions import DatabaseError
from player_ledger.core.logging.logger import get_logger
from player_ledger.database.models import AuditLog

logger = get_logger(__name__)


class AuditRepository:
    """Writes and queries audit rows."""

    def __init__(self, database_service: Type[DatabaseService] = DatabaseService) -> None:
        self._db_service = database_service

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(self, audit_entry: AuditLog) -> AuditLog:
        start_time = time.monotonic()

        try:
            async with self._db_service.get_transaction() as session:
                session.add(audit_entry)
                await session.flush()
                await session.refresh(audit_entry)
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to create audit log entry",
                extra={
                    "event_kind": audit_entry.event_kind,
                    "account": audit_entry.account,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise DatabaseError("audit insert", exc) from exc

        logger.debug(
            "Audit log entry created",
            extra={
                "audit_id": audit_entry.id,
                "event_kind": audit_entry.event_kind,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return audit_entry

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Retention cleanup. Returns the number of rows removed."""
        async with self._db_service.get_transaction() as session:
            result = await session.execute(
                delete(AuditLog).where(AuditLog.created_at < cutoff)
            )
            removed = int(result.rowcount or 0)

        logger.info(
            "Old audit logs removed",
            extra={"cutoff": cutoff.isoformat(), "removed": removed},
        )
        return removed

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_by_account(
        self,
        account: str,
        limit: int = 100,
        offset: int = 0,
        event_kind: Optional[str] = None,
    ) -> List[AuditLog]:
        """Newest first."""
        async with self._db_service.get_session() as session:
            query = select(AuditLog).where(AuditLog.account == account)
            if event_kind:
                query = query.where(AuditLog.event_kind == event_kind)
            query = query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            query = query.limit(limit).offset(offset)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_by_kind(self, event_kind: str, limit: int = 100) -> List[AuditLog]:
        async with self._db_service.get_session() as session:
            result = await session.execute(
                select(AuditLog)
                .where(AuditLog.event_kind == event_kind)
                .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_recent(self, limit: int = 50) -> List[AuditLog]:
        async with self._db_service.get_session() as session:
            result = await session.execute(
                select(AuditLog)
                .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
                .limit(limit)
            )
            return list(result.scalars().all())

    async def count_by_kind(self, account: Optional[str] = None) -> Dict[str, Any]:
        async with self._db_service.get_session() as session:
            query = select(AuditLog.event_kind, func.count(AuditLog.id)).group_by(
                AuditLog.event_kind
            )
            if account:
                query = query.where(AuditLog.account == account)

            result = await session.execute(query)
            return {kind: int(count) for kind, count in result.all()}
