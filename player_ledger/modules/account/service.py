"""
Account Lifecycle Service
=========================

Purpose
-------
Creates and destroys player accounts and serves bulk account reads. Every
lifecycle transition is authorized by signatures over the canonical
lifecycle message rather than by the identity of the caller.

Domain
------
- create: admin signature over (account, salt, timestamp)
- delete: admin signature AND the account's own signature over the same
  message; the caller names which secondary IDs to clear
- read: self or admin only; missing records read as defaults

Ordering
--------
create: assert new -> build message -> verify admin -> mark live and
zero-initialize -> commit -> record `account.created`

delete: build message -> verify admin -> verify player -> clear liveness
and the named records -> commit -> record `account.deleted`

Each transition holds the account's lock from the first check to the audit
record, and all writes share one transaction. A failure at any step leaves
the account untouched and records nothing.

Deletion does not require the account to be live. Deleting a never-created
account with valid signatures succeeds and emits `account.deleted`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from player_ledger.core.database.service import DatabaseService
from player_ledger.core.logging.logger import LogContext
from player_ledger.core.validation import InputValidator
from player_ledger.modules.account.locks import AccountLockRegistry
from player_ledger.modules.audit.sink import ACCOUNT_CREATED, ACCOUNT_DELETED
from player_ledger.modules.auth.messages import build_lifecycle_message
from player_ledger.modules.shared.base_service import BaseService
from player_ledger.modules.shared.exceptions import LedgerDomainException

if TYPE_CHECKING:
    from logging import Logger

    from player_ledger.core.config.config import Config
    from player_ledger.domain.models import AccountSnapshot
    from player_ledger.modules.audit.sink import AuditSink
    from player_ledger.modules.auth.verifier import SignatureVerifier
    from player_ledger.modules.identity.registry import IdentityRegistry
    from player_ledger.modules.ledger.store import LedgerStore


# ============================================================================
# AccountService
# ============================================================================


class AccountService(BaseService):
    """
    Signature-gated account lifecycle plus authorized bulk reads.

    Dependencies
    ------------
    - SignatureVerifier: admin and player signature checks
    - IdentityRegistry: liveness and caller authority
    - LedgerStore: packed words and holdings
    - AccountLockRegistry: per-account serialization (shared with
      LedgerService so both write paths exclude each other)

    Public Methods
    --------------
    - get_account() -> Bulk read for self or admin
    - account_exists() -> Liveness check
    - hash_lifecycle_message() -> The 32-byte hash signers must sign
    - create_account() -> Admin-signed creation
    - delete_account() -> Admin- and player-signed deletion
    """

    def __init__(
        self,
        config: type[Config],
        audit_sink: AuditSink,
        logger: Logger,
        *,
        verifier: SignatureVerifier,
        registry: IdentityRegistry,
        store: LedgerStore,
        locks: Optional[AccountLockRegistry] = None,
    ) -> None:
        super().__init__(config, audit_sink, logger)
        self._verifier = verifier
        self._registry = registry
        self._store = store
        self._locks = locks if locks is not None else AccountLockRegistry()

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_account(
        self,
        caller: Any,
        account: Any,
        item_ids: Optional[Sequence[int]] = None,
        fragment_ids: Optional[Sequence[int]] = None,
        season_ids: Optional[Sequence[int]] = None,
    ) -> AccountSnapshot:
        """
        Read the named records of `account` in request order.

        This is a **read-only** operation using get_session(). Liveness is
        not required: a never-created or deleted account reads as all
        defaults.

        Raises:
            ValidationError: malformed address or ID list
            NotSelfOrAdminError: caller is neither `account` nor an admin
        """
        caller = InputValidator.validate_address(caller, "caller")
        account = InputValidator.validate_address(account, "account")
        items = InputValidator.validate_id_list(item_ids, "item_ids")
        fragments = InputValidator.validate_id_list(fragment_ids, "fragment_ids")
        seasons = InputValidator.validate_id_list(season_ids, "season_ids")

        self._registry.assert_caller_is_self_or_admin(caller, account)

        self.log.debug(
            "Reading account",
            extra={
                "account": account,
                "caller": caller,
                "items": len(items),
                "fragments": len(fragments),
                "seasons": len(seasons),
            },
        )

        async with DatabaseService.get_session() as session:
            return await self._store.read_bulk(session, account, items, fragments, seasons)

    async def account_exists(self, account: Any) -> bool:
        account = InputValidator.validate_address(account, "account")
        async with DatabaseService.get_session() as session:
            return await self._registry.exists(session, account)

    def hash_lifecycle_message(self, account: Any, salt: Any, timestamp: Any) -> bytes:
        """Expose the canonical lifecycle hash so clients can sign it."""
        return build_lifecycle_message(account, salt, timestamp)

    # ========================================================================
    # PUBLIC API - Lifecycle Operations
    # ========================================================================

    async def create_account(
        self,
        account: Any,
        salt: Any,
        timestamp: Any,
        admin_signature: Any,
    ) -> str:
        """
        Create `account`, authorized by an admin signature.

        The packed words are explicitly zeroed and any holding rows left
        behind by an earlier incarnation of the identity are dropped, so a
        recreated account always starts empty.

        Returns:
            The checksummed account address

        Raises:
            ValidationError: malformed account, salt, timestamp or signature
            AccountAlreadyExistsError: account is already live
            InvalidAdminSignatureError: signer is not an admin
        """
        account = InputValidator.validate_address(account, "account")

        async with LogContext(account=account, operation="create_account"):
            async with self._locks.hold(account):
                try:
                    async with DatabaseService.get_transaction() as session:
                        await self._registry.assert_new(session, account, for_update=True)

                        message_hash = build_lifecycle_message(account, salt, timestamp)
                        admin = self._verifier.verify_admin(message_hash, admin_signature)

                        await self._registry.set_exists(session, account, True)
                        await self._store.reset_account(session, account)
                except LedgerDomainException as exc:
                    self.log_error("create_account", exc, account=account)
                    raise

                await self.emit_event(ACCOUNT_CREATED, account, {"admin": admin})

            self.log_operation("create_account", account=account, admin=admin)
            return account

    async def delete_account(
        self,
        account: Any,
        item_ids: Optional[Sequence[int]],
        fragment_ids: Optional[Sequence[int]],
        season_ids: Optional[Sequence[int]],
        salt: Any,
        timestamp: Any,
        admin_signature: Any,
        player_signature: Any,
    ) -> str:
        """
        Delete `account`, authorized by both an admin and the account itself.

        Only the named secondary IDs are cleared; records the caller omits
        stay in storage and resurface if the identity is recreated without
        a reset. Both packed words are always zeroed.

        Returns:
            The checksummed account address

        Raises:
            ValidationError: malformed inputs
            InvalidAdminSignatureError: admin signer check failed
            InvalidPlayerSignatureError: player signer is not `account`
        """
        account = InputValidator.validate_address(account, "account")
        items = InputValidator.validate_id_list(item_ids, "item_ids")
        fragments = InputValidator.validate_id_list(fragment_ids, "fragment_ids")
        seasons = InputValidator.validate_id_list(season_ids, "season_ids")

        async with LogContext(account=account, operation="delete_account"):
            async with self._locks.hold(account):
                try:
                    message_hash = build_lifecycle_message(account, salt, timestamp)
                    admin = self._verifier.verify_admin(message_hash, admin_signature)
                    self._verifier.verify_player(message_hash, player_signature, account)

                    async with DatabaseService.get_transaction() as session:
                        was_live = await self._registry.exists(session, account, for_update=True)
                        await self._registry.set_exists(session, account, False)
                        removed = await self._store.clear_bulk(
                            session, account, items, fragments, seasons
                        )
                except LedgerDomainException as exc:
                    self.log_error("delete_account", exc, account=account)
                    raise

                await self.emit_event(
                    ACCOUNT_DELETED,
                    account,
                    {"admin": admin, "was_live": was_live, "removed": removed},
                )

            self.log_operation(
                "delete_account", account=account, admin=admin, was_live=was_live, **removed
            )
            return account
