"""
Per-account keyed holdings.

Every table is addressed by `(account, secondary_id)` and is never
enumerated by the services: callers name the secondary IDs they want read
or cleared. Secondary IDs are uint256 values stored through `Uint256`.

Rows exist only while they hold a non-default value; clearing deletes the
row, so a missing row is the zero record.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from player_ledger.core.database.base import Base, TimestampMixin
from player_ledger.core.database.types import Uint256


class OwnedItemRecord(Base, TimestampMixin):
    """Item ownership keyed by (account, item_id)."""

    __tablename__ = "owned_items"

    account: Mapped[str] = mapped_column(String(42), primary_key=True)

    item_id: Mapped[int] = mapped_column(Uint256, primary_key=True)

    owned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    attributes: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Catalog-defined fields, stored opaquely",
    )


class OwnedFragmentRecord(Base, TimestampMixin):
    """Fragment holdings keyed by (account, fragment_id)."""

    __tablename__ = "owned_fragments"

    account: Mapped[str] = mapped_column(String(42), primary_key=True)

    fragment_id: Mapped[int] = mapped_column(Uint256, primary_key=True)

    owned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    attributes: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )


class LeagueRecord(Base, TimestampMixin):
    """Season results keyed by (account, season_id)."""

    __tablename__ = "league_records"

    account: Mapped[str] = mapped_column(String(42), primary_key=True)

    season_id: Mapped[int] = mapped_column(Uint256, primary_key=True)

    points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    wins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    losses: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
