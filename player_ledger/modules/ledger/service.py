"""
Ledger Service
==============

Purpose
-------
Admin-gated write paths for the records an account holds: currency, items,
fragments, league results and progression stats. Lifecycle transitions live
in `AccountService`; this service only changes what a live account owns.

Rules
-----
- The caller must hold the admin role (`NotAdminError` otherwise).
- The account must be live (`AccountNotFoundError` otherwise). Records are
  never written for an account that has not been created.
- Inputs are validated before the account is locked.
- Each write holds the account lock, runs in one transaction, and records
  one `ledger.*` audit entry after commit.
- Packed halves never wrap: a credit past 2**128-1 or a debit below zero
  raises `PackedValueOverflowError` and nothing is written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from player_ledger.core.database.service import DatabaseService
from player_ledger.core.logging.logger import LogContext
from player_ledger.core.validation import InputValidator
from player_ledger.domain.models import (
    Balance,
    LeagueData,
    OwnedItem,
    OwnedItemFragment,
    Progression,
)
from player_ledger.modules.account.locks import AccountLockRegistry
from player_ledger.modules.audit.sink import (
    CURRENCY_CREDITED,
    CURRENCY_DEBITED,
    FRAGMENT_GRANTED,
    ITEM_GRANTED,
    ITEM_REVOKED,
    LEAGUE_RECORDED,
    PROGRESSION_SET,
)
from player_ledger.modules.shared.base_service import BaseService
from player_ledger.modules.shared.exceptions import (
    LedgerDomainException,
    NotAdminError,
    ValidationError,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from player_ledger.core.config.config import Config
    from player_ledger.modules.audit.sink import AuditSink
    from player_ledger.modules.identity.registry import IdentityRegistry
    from player_ledger.modules.ledger.store import LedgerStore

T = TypeVar("T")

# Fragment amounts and league counters are stored as signed 64-bit integers.
INT64_MAX = 2**63 - 1

Mutation = Callable[["AsyncSession"], Awaitable[Tuple[T, Dict[str, Any]]]]


class LedgerService(BaseService):
    """
    Admin-only mutations of a live account's records.

    Shares its `AccountLockRegistry` with `AccountService` so a ledger write
    can never interleave with the creation or deletion of the same account.
    """

    def __init__(
        self,
        config: type[Config],
        audit_sink: AuditSink,
        logger: Logger,
        *,
        registry: IdentityRegistry,
        store: LedgerStore,
        locks: Optional[AccountLockRegistry] = None,
    ) -> None:
        super().__init__(config, audit_sink, logger)
        self._registry = registry
        self._store = store
        self._locks = locks if locks is not None else AccountLockRegistry()

    # ========================================================================
    # PUBLIC API - Currency
    # ========================================================================

    async def credit_currency(
        self, caller: Any, account: Any, gold: Any = 0, marble: Any = 0
    ) -> Balance:
        """
        Add gold and/or marble to the balance.

        Raises:
            PackedValueOverflowError: a half would exceed 2**128-1
        """
        caller, account = self._check_caller(caller, account)
        gold = InputValidator.validate_uint128(gold, "gold")
        marble = InputValidator.validate_uint128(marble, "marble")

        async def mutation(session: AsyncSession) -> Tuple[Balance, Dict[str, Any]]:
            current = await self._store.get_balance(session, account)
            updated = await self._store.set_balance(
                session, account, current.credit(gold=gold, marble=marble)
            )
            return updated, self._balance_details(gold, marble, updated)

        return await self._write(
            "credit_currency", CURRENCY_CREDITED, caller, account, mutation
        )

    async def debit_currency(
        self, caller: Any, account: Any, gold: Any = 0, marble: Any = 0
    ) -> Balance:
        """
        Remove gold and/or marble from the balance.

        Raises:
            PackedValueOverflowError: a half would drop below zero
        """
        caller, account = self._check_caller(caller, account)
        gold = InputValidator.validate_uint128(gold, "gold")
        marble = InputValidator.validate_uint128(marble, "marble")

        async def mutation(session: AsyncSession) -> Tuple[Balance, Dict[str, Any]]:
            current = await self._store.get_balance(session, account)
            updated = await self._store.set_balance(
                session, account, current.debit(gold=gold, marble=marble)
            )
            return updated, self._balance_details(gold, marble, updated)

        return await self._write(
            "debit_currency", CURRENCY_DEBITED, caller, account, mutation
        )

    # ========================================================================
    # PUBLIC API - Progression
    # ========================================================================

    async def set_progression(
        self, caller: Any, account: Any, draws_per_match: Any, draw_length: Any
    ) -> Progression:
        """Overwrite both progression halves."""
        caller, account = self._check_caller(caller, account)
        progression = Progression(
            draws_per_match=InputValidator.validate_uint128(draws_per_match, "draws_per_match"),
            draw_length=InputValidator.validate_uint128(draw_length, "draw_length"),
        )

        async def mutation(session: AsyncSession) -> Tuple[Progression, Dict[str, Any]]:
            await self._store.set_progression(session, account, progression)
            return progression, {
                "draws_per_match": progression.draws_per_match,
                "draw_length": progression.draw_length,
            }

        return await self._write(
            "set_progression", PROGRESSION_SET, caller, account, mutation
        )

    # ========================================================================
    # PUBLIC API - Items & Fragments
    # ========================================================================

    async def grant_item(
        self,
        caller: Any,
        account: Any,
        item_id: Any,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> OwnedItem:
        """Mark `item_id` owned, replacing its stored attributes."""
        caller, account = self._check_caller(caller, account)
        item_id = InputValidator.validate_uint256(item_id, "item_id")
        item = OwnedItem(owned=True, attributes=InputValidator.validate_attributes(attributes))

        async def mutation(session: AsyncSession) -> Tuple[OwnedItem, Dict[str, Any]]:
            await self._store.put_item(session, account, item_id, item)
            return item, {"item_id": item_id}

        return await self._write("grant_item", ITEM_GRANTED, caller, account, mutation)

    async def revoke_item(self, caller: Any, account: Any, item_id: Any) -> bool:
        """
        Drop `item_id` from the account.

        Returns False when the item was not held; that still counts as a
        successful revoke and is recorded.
        """
        caller, account = self._check_caller(caller, account)
        item_id = InputValidator.validate_uint256(item_id, "item_id")

        async def mutation(session: AsyncSession) -> Tuple[bool, Dict[str, Any]]:
            removed = await self._store.remove_item(session, account, item_id)
            return removed, {"item_id": item_id, "removed": removed}

        return await self._write("revoke_item", ITEM_REVOKED, caller, account, mutation)

    async def grant_fragment(
        self,
        caller: Any,
        account: Any,
        fragment_id: Any,
        amount: Any,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> OwnedItemFragment:
        """
        Add `amount` fragments. Attributes are replaced only when given.

        Raises:
            ValidationError: amount < 1 or the new total would not fit int64
        """
        caller, account = self._check_caller(caller, account)
        fragment_id = InputValidator.validate_uint256(fragment_id, "fragment_id")
        amount = InputValidator.validate_integer(amount, "amount", 1, INT64_MAX)
        new_attributes = (
            InputValidator.validate_attributes(attributes) if attributes is not None else None
        )

        async def mutation(
            session: AsyncSession,
        ) -> Tuple[OwnedItemFragment, Dict[str, Any]]:
            current = await self._store.get_fragment(session, account, fragment_id)
            if current.amount + amount > INT64_MAX:
                raise ValidationError("amount", f"Fragment total cannot exceed {INT64_MAX}")

            updated = current.add(amount)
            if new_attributes is not None:
                updated = OwnedItemFragment(
                    owned=updated.owned, amount=updated.amount, attributes=new_attributes
                )
            await self._store.put_fragment(session, account, fragment_id, updated)
            return updated, {
                "fragment_id": fragment_id,
                "amount": amount,
                "total": updated.amount,
            }

        return await self._write(
            "grant_fragment", FRAGMENT_GRANTED, caller, account, mutation
        )

    # ========================================================================
    # PUBLIC API - League
    # ========================================================================

    async def record_league_result(
        self,
        caller: Any,
        account: Any,
        season_id: Any,
        points: Any,
        wins: Any,
        losses: Any,
    ) -> LeagueData:
        """Store the season record as given. Scoring happens upstream."""
        caller, account = self._check_caller(caller, account)
        season_id = InputValidator.validate_uint256(season_id, "season_id")
        record = LeagueData(
            points=InputValidator.validate_integer(points, "points", 0, INT64_MAX),
            wins=InputValidator.validate_integer(wins, "wins", 0, INT64_MAX),
            losses=InputValidator.validate_integer(losses, "losses", 0, INT64_MAX),
        )

        async def mutation(session: AsyncSession) -> Tuple[LeagueData, Dict[str, Any]]:
            await self._store.put_league_record(session, account, season_id, record)
            return record, {
                "season_id": season_id,
                "points": record.points,
                "wins": record.wins,
                "losses": record.losses,
            }

        return await self._write(
            "record_league_result", LEAGUE_RECORDED, caller, account, mutation
        )

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _check_caller(self, caller: Any, account: Any) -> Tuple[str, str]:
        caller = InputValidator.validate_address(caller, "caller")
        account = InputValidator.validate_address(account, "account")
        if not self._registry.is_admin(caller):
            error = NotAdminError(caller)
            self.log_error("ledger_write", error, caller=caller, account=account)
            raise error
        return caller, account

    async def _write(
        self,
        operation: str,
        event_kind: str,
        caller: str,
        account: str,
        mutation: Mutation[T],
    ) -> T:
        async with LogContext(account=account, caller=caller, operation=operation):
            async with self._locks.hold(account):
                try:
                    async with DatabaseService.get_transaction() as session:
                        await self._registry.assert_exists(session, account, for_update=True)
                        result, details = await mutation(session)
                except LedgerDomainException as exc:
                    self.log_error(operation, exc, account=account, caller=caller)
                    raise

                await self.emit_event(event_kind, account, {"caller": caller, **details})

            self.log_operation(operation, account=account, caller=caller, **details)
            return result

    @staticmethod
    def _balance_details(gold: int, marble: int, balance: Balance) -> Dict[str, Any]:
        # uint128 values exceed JSON-safe integers in some consumers.
        return {
            "gold_delta": str(gold),
            "marble_delta": str(marble),
            "gold": str(balance.gold),
            "marble": str(balance.marble),
        }
