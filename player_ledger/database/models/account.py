"""
Account Ledger Model
====================

One row per identity that has ever been created. Schema only.

- address: EIP-55 checksummed account address (primary key)
- exists: sole authority on whether the account is live
- balance: packed (gold low, marble high) uint256 word
- progression: packed (draws_per_match low, draw_length high) uint256 word

Rows are kept after deletion with `exists=False` and both words zeroed;
an absent row and a deleted row read identically.
"""

from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from player_ledger.core.database.base import Base, TimestampMixin
from player_ledger.core.database.types import Uint256


class AccountLedger(Base, TimestampMixin):
    """Per-account liveness flag and packed words."""

    __tablename__ = "account_ledger"

    address: Mapped[str] = mapped_column(
        String(42),
        primary_key=True,
        doc="Checksummed account address",
    )

    exists: Mapped[bool] = mapped_column(
        "account_exists",
        Boolean,
        nullable=False,
        default=False,
        index=True,
        doc="Whether the account is live",
    )

    balance: Mapped[int] = mapped_column(
        Uint256,
        nullable=False,
        default=0,
        doc="Packed (gold, marble) word",
    )

    progression: Mapped[int] = mapped_column(
        Uint256,
        nullable=False,
        default=0,
        doc="Packed (draws_per_match, draw_length) word",
    )

    def __repr__(self) -> str:
        return f"<AccountLedger address={self.address} exists={self.exists}>"
