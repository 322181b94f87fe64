"""
Ledger Store
============

Keyed storage for packed words and per-account holdings.

Purpose
-------
Read and write balance, progression, owned items, owned fragments and league
records. The store never enumerates a collection on behalf of a caller: bulk
reads and bulk clears touch exactly the secondary IDs supplied.

Semantics
---------
- `read_bulk` is order preserving and returns one element per requested ID.
  Missing rows read as the default record; absence is not an error.
- `clear_bulk` deletes the named rows and zeroes both packed words. It runs
  in the caller's transaction, so it commits or rolls back together with
  the liveness flag.
- `reset_account` zeroes both words and drops every holding row for the
  account. Creation uses it so a reused identity starts empty.

The store performs no authorization; callers check liveness and authority
first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from player_ledger.core.logging.logger import get_logger
from player_ledger.database.models import (
    AccountLedger,
    LeagueRecord,
    OwnedFragmentRecord,
    OwnedItemRecord,
)
from player_ledger.domain.models import (
    AccountSnapshot,
    Balance,
    LeagueData,
    OwnedItem,
    OwnedItemFragment,
    Progression,
)
from player_ledger.modules.shared.base_repository import BaseRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _unique(ids: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(ids))


class LedgerStore:
    """Keyed access to every per-account ledger table."""

    def __init__(self) -> None:
        self._accounts: BaseRepository[AccountLedger] = BaseRepository(AccountLedger, logger)
        self._items: BaseRepository[OwnedItemRecord] = BaseRepository(OwnedItemRecord, logger)
        self._fragments: BaseRepository[OwnedFragmentRecord] = BaseRepository(
            OwnedFragmentRecord, logger
        )
        self._league: BaseRepository[LeagueRecord] = BaseRepository(LeagueRecord, logger)

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    async def read_bulk(
        self,
        session: AsyncSession,
        account: str,
        item_ids: Sequence[int],
        fragment_ids: Sequence[int],
        season_ids: Sequence[int],
    ) -> AccountSnapshot:
        """Order-preserving read of the named records plus both packed words."""
        ledger = await self._accounts.get(session, account)
        balance = Balance.from_word(ledger.balance) if ledger else Balance()
        progression = Progression.from_word(ledger.progression) if ledger else Progression()

        items_by_id: Dict[int, OwnedItemRecord] = {}
        if item_ids:
            rows = await self._items.find_many_where(
                session,
                OwnedItemRecord.account == account,
                OwnedItemRecord.item_id.in_(_unique(item_ids)),
            )
            items_by_id = {row.item_id: row for row in rows}

        fragments_by_id: Dict[int, OwnedFragmentRecord] = {}
        if fragment_ids:
            rows = await self._fragments.find_many_where(
                session,
                OwnedFragmentRecord.account == account,
                OwnedFragmentRecord.fragment_id.in_(_unique(fragment_ids)),
            )
            fragments_by_id = {row.fragment_id: row for row in rows}

        league_by_id: Dict[int, LeagueRecord] = {}
        if season_ids:
            rows = await self._league.find_many_where(
                session,
                LeagueRecord.account == account,
                LeagueRecord.season_id.in_(_unique(season_ids)),
            )
            league_by_id = {row.season_id: row for row in rows}

        return AccountSnapshot(
            balance=balance,
            items=tuple(self._to_item(items_by_id.get(i)) for i in item_ids),
            fragments=tuple(self._to_fragment(fragments_by_id.get(i)) for i in fragment_ids),
            progression=progression,
            league_records=tuple(self._to_league(league_by_id.get(i)) for i in season_ids),
        )

    async def clear_bulk(
        self,
        session: AsyncSession,
        account: str,
        item_ids: Sequence[int],
        fragment_ids: Sequence[int],
        season_ids: Sequence[int],
    ) -> Dict[str, int]:
        """
        Delete the named holdings and zero both packed words.

        Returns how many rows were removed per collection. Clearing records
        that were never written is a no-op.
        """
        removed = {"items": 0, "fragments": 0, "league_records": 0}

        if item_ids:
            removed["items"] = await self._items.delete_where(
                session,
                OwnedItemRecord.account == account,
                OwnedItemRecord.item_id.in_(_unique(item_ids)),
            )
        if fragment_ids:
            removed["fragments"] = await self._fragments.delete_where(
                session,
                OwnedFragmentRecord.account == account,
                OwnedFragmentRecord.fragment_id.in_(_unique(fragment_ids)),
            )
        if season_ids:
            removed["league_records"] = await self._league.delete_where(
                session,
                LeagueRecord.account == account,
                LeagueRecord.season_id.in_(_unique(season_ids)),
            )

        await self._zero_words(session, account)

        logger.debug("Ledger records cleared", extra={"account": account, **removed})
        return removed

    async def reset_account(self, session: AsyncSession, account: str) -> Dict[str, int]:
        """Zero both words and drop every holding row of `account`."""
        removed = {
            "items": await self._items.delete_where(
                session, OwnedItemRecord.account == account
            ),
            "fragments": await self._fragments.delete_where(
                session, OwnedFragmentRecord.account == account
            ),
            "league_records": await self._league.delete_where(
                session, LeagueRecord.account == account
            ),
        }
        await self._zero_words(session, account)

        if any(removed.values()):
            logger.info(
                "Stale holdings dropped for reused identity",
                extra={"account": account, **removed},
            )
        return removed

    async def _zero_words(self, session: AsyncSession, account: str) -> None:
        ledger = await self._accounts.get(session, account, for_update=True)
        if ledger is not None:
            ledger.balance = 0
            ledger.progression = 0

    # =========================================================================
    # PACKED WORDS
    # =========================================================================

    async def _require_ledger(self, session: AsyncSession, account: str) -> AccountLedger:
        ledger = await self._accounts.get(session, account, for_update=True)
        if ledger is None:
            # Callers check liveness first; a live account always has a row.
            raise LookupError(f"No ledger row for {account}")
        return ledger

    async def get_balance(self, session: AsyncSession, account: str) -> Balance:
        ledger = await self._accounts.get(session, account)
        return Balance.from_word(ledger.balance) if ledger else Balance()

    async def set_balance(
        self, session: AsyncSession, account: str, balance: Balance
    ) -> Balance:
        ledger = await self._require_ledger(session, account)
        ledger.balance = balance.to_word()
        return balance

    async def get_progression(self, session: AsyncSession, account: str) -> Progression:
        ledger = await self._accounts.get(session, account)
        return Progression.from_word(ledger.progression) if ledger else Progression()

    async def set_progression(
        self, session: AsyncSession, account: str, progression: Progression
    ) -> Progression:
        ledger = await self._require_ledger(session, account)
        ledger.progression = progression.to_word()
        return progression

    # =========================================================================
    # HOLDINGS
    # =========================================================================

    async def put_item(
        self, session: AsyncSession, account: str, item_id: int, item: OwnedItem
    ) -> OwnedItem:
        row = await self._items.get(session, (account, item_id), for_update=True)
        if row is None:
            row = OwnedItemRecord(account=account, item_id=item_id)
            await self._items.add(session, row)
        row.owned = item.owned
        row.attributes = dict(item.attributes)
        return item

    async def remove_item(self, session: AsyncSession, account: str, item_id: int) -> bool:
        removed = await self._items.delete_where(
            session,
            OwnedItemRecord.account == account,
            OwnedItemRecord.item_id == item_id,
        )
        return removed > 0

    async def get_fragment(
        self, session: AsyncSession, account: str, fragment_id: int
    ) -> OwnedItemFragment:
        row = await self._fragments.get(session, (account, fragment_id))
        return self._to_fragment(row)

    async def put_fragment(
        self,
        session: AsyncSession,
        account: str,
        fragment_id: int,
        fragment: OwnedItemFragment,
    ) -> OwnedItemFragment:
        row = await self._fragments.get(session, (account, fragment_id), for_update=True)
        if row is None:
            row = OwnedFragmentRecord(account=account, fragment_id=fragment_id)
            await self._fragments.add(session, row)
        row.owned = fragment.owned
        row.amount = fragment.amount
        row.attributes = dict(fragment.attributes)
        return fragment

    async def put_league_record(
        self, session: AsyncSession, account: str, season_id: int, record: LeagueData
    ) -> LeagueData:
        row = await self._league.get(session, (account, season_id), for_update=True)
        if row is None:
            row = LeagueRecord(account=account, season_id=season_id)
            await self._league.add(session, row)
        row.points = record.points
        row.wins = record.wins
        row.losses = record.losses
        return record

    # =========================================================================
    # ROW -> DOMAIN
    # =========================================================================

    @staticmethod
    def _to_item(row: Optional[OwnedItemRecord]) -> OwnedItem:
        if row is None:
            return OwnedItem()
        return OwnedItem(owned=row.owned, attributes=dict(row.attributes or {}))

    @staticmethod
    def _to_fragment(row: Optional[OwnedFragmentRecord]) -> OwnedItemFragment:
        if row is None:
            return OwnedItemFragment()
        return OwnedItemFragment(
            owned=row.owned,
            amount=row.amount,
            attributes=dict(row.attributes or {}),
        )

    @staticmethod
    def _to_league(row: Optional[LeagueRecord]) -> LeagueData:
        if row is None:
            return LeagueData()
        return LeagueData(points=row.points, wins=row.wins, losses=row.losses)
