"""
Identity Registry
=================

Tracks which accounts are live and enforces lifecycle preconditions.

`exists` on `AccountLedger` is the only liveness signal, and `set_exists`
is its only writer. It runs once per lifecycle operation, inside that
operation's transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from player_ledger.core.logging.logger import get_logger
from player_ledger.database.models import AccountLedger
from player_ledger.modules.auth.roles import Role, RoleAuthority
from player_ledger.modules.shared.base_repository import BaseRepository
from player_ledger.modules.shared.exceptions import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    NotSelfOrAdminError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class AccountRepository(BaseRepository[AccountLedger]):
    def __init__(self) -> None:
        super().__init__(AccountLedger, logger)


class IdentityRegistry:
    """
    Liveness lookups and precondition checks.

    All account arguments are expected in checksummed form; services
    normalize them through `InputValidator.validate_address` first.
    """

    def __init__(
        self,
        role_authority: RoleAuthority,
        repository: AccountRepository | None = None,
    ) -> None:
        self._roles = role_authority
        self._accounts = repository or AccountRepository()

    async def exists(
        self, session: AsyncSession, account: str, for_update: bool = False
    ) -> bool:
        """
        Liveness of `account`.

        Writers pass `for_update=True` so the ledger row is locked before
        anything else in the transaction reads it.
        """
        record = await self._accounts.get(session, account, for_update=for_update)
        return bool(record is not None and record.exists)

    async def assert_new(
        self, session: AsyncSession, account: str, for_update: bool = False
    ) -> None:
        """Raises AccountAlreadyExistsError if `account` is live."""
        if await self.exists(session, account, for_update):
            raise AccountAlreadyExistsError(account)

    async def assert_exists(
        self, session: AsyncSession, account: str, for_update: bool = False
    ) -> None:
        """Raises AccountNotFoundError unless `account` is live."""
        if not await self.exists(session, account, for_update):
            raise AccountNotFoundError(account)

    def is_admin(self, identity: str) -> bool:
        return self._roles.has_role(identity, Role.ADMIN)

    def assert_caller_is_self_or_admin(self, caller: str, account: str) -> None:
        """Raises NotSelfOrAdminError unless caller == account or caller is admin."""
        if caller == account or self.is_admin(caller):
            return
        raise NotSelfOrAdminError(caller, account)

    async def set_exists(
        self, session: AsyncSession, account: str, value: bool
    ) -> Optional[AccountLedger]:
        """
        Set the liveness flag, creating the ledger row on first creation.

        Clearing the flag of an identity that never had a row writes
        nothing. Takes a row lock where the dialect supports it.
        """
        record = await self._accounts.get(session, account, for_update=True)
        if record is None:
            if not value:
                return None
            record = AccountLedger(address=account, exists=True, balance=0, progression=0)
            await self._accounts.add(session, record)
        else:
            record.exists = value

        logger.debug(
            "Account liveness set",
            extra={"account": account, "exists": value},
        )
        return record
