"""
Audit Log Model
===============

Append-only record of every successful ledger mutation, written by the
audit consumer after the mutation commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from player_ledger.core.database.base import Base, IdMixin, utc_now


class AuditLog(Base, IdMixin):
    """One row per emitted ledger event."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_account_created", "account", "created_at"),
    )

    event_kind: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Event name, e.g. account.created",
    )

    account: Mapped[str] = mapped_column(String(42), nullable=False)

    caller: Mapped[Optional[str]] = mapped_column(
        String(42),
        nullable=True,
        doc="Admin or player that authorized the mutation, when known",
    )

    details: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} kind={self.event_kind} account={self.account}>"
