"""
Application Context
===================

Purpose
-------
Builds the ledger's object graph in dependency order and tears it down in
reverse.

Initialization Order:
    1. DatabaseService (engine, session factory, schema)
    2. EventBus and role authority (seeded from Config.ADMIN_ADDRESSES)
    3. Audit sink and, when Config.AUDIT_PERSIST is set, the audit consumer
    4. Registry, store, verifier, shared account locks
    5. AccountService, LedgerService, AuditService

Shutdown Order (Reverse):
    1. AuditConsumer.stop()
    2. EventBus.drain()
    3. DatabaseService.shutdown()

Usage:
    async with LedgerApplication() as app:
        await app.accounts.create_account(account, salt, ts, admin_sig)
"""

from __future__ import annotations

import time
from typing import Optional

from player_ledger.core.config import Config
from player_ledger.core.database.service import DatabaseService
from player_ledger.core.event.bus import EventBus
from player_ledger.core.logging.logger import get_logger
from player_ledger.modules.account import AccountLockRegistry, AccountService
from player_ledger.modules.audit import (
    AuditConsumer,
    AuditRepository,
    AuditService,
    AuditSink,
    EventBusAuditSink,
)
from player_ledger.modules.auth import RoleAuthority, SignatureVerifier, StaticRoleAuthority
from player_ledger.modules.identity import IdentityRegistry
from player_ledger.modules.ledger import LedgerService, LedgerStore

logger = get_logger(__name__)


class LedgerApplication:
    """
    Container for a fully wired ledger.

    Collaborators may be injected; anything omitted is built from `Config`.
    Services are available as attributes after `initialize()`.
    """

    def __init__(
        self,
        *,
        database_url: Optional[str] = None,
        event_bus: Optional[EventBus] = None,
        role_authority: Optional[RoleAuthority] = None,
        audit_sink: Optional[AuditSink] = None,
        audit_persist: Optional[bool] = None,
    ) -> None:
        self._database_url = database_url
        self._audit_persist = Config.AUDIT_PERSIST if audit_persist is None else audit_persist

        self.event_bus: EventBus = event_bus or EventBus()
        self.role_authority: RoleAuthority = role_authority or StaticRoleAuthority.from_admins(
            Config.ADMIN_ADDRESSES
        )
        self.audit_sink: AuditSink = audit_sink or EventBusAuditSink(self.event_bus)

        self.audit_consumer: Optional[AuditConsumer] = None
        self.accounts: Optional[AccountService] = None
        self.ledger: Optional[LedgerService] = None
        self.audit: Optional[AuditService] = None

        self._initialized: bool = False

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Raises:
            RuntimeError: If already initialized or initialization fails
        """
        if self._initialized:
            raise RuntimeError("LedgerApplication already initialized")

        start_time = time.perf_counter()

        try:
            await DatabaseService.initialize(self._database_url)
            await DatabaseService.create_schema()

            audit_repository = AuditRepository(DatabaseService)
            if self._audit_persist:
                self.audit_consumer = AuditConsumer(self.event_bus, audit_repository)
                await self.audit_consumer.start()

            registry = IdentityRegistry(self.role_authority)
            store = LedgerStore()
            locks = AccountLockRegistry()

            self.accounts = AccountService(
                Config,
                self.audit_sink,
                get_logger("player_ledger.modules.account.service"),
                verifier=SignatureVerifier(self.role_authority),
                registry=registry,
                store=store,
                locks=locks,
            )
            self.ledger = LedgerService(
                Config,
                self.audit_sink,
                get_logger("player_ledger.modules.ledger.service"),
                registry=registry,
                store=store,
                locks=locks,
            )
            self.audit = AuditService(audit_repository)

        except Exception as exc:
            logger.critical(
                "Ledger initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            await self._teardown()
            raise RuntimeError("Failed to initialize ledger application") from exc

        self._initialized = True
        logger.info(
            "Ledger application initialized (%.2fms)",
            (time.perf_counter() - start_time) * 1000,
            extra={
                "environment": Config.ENVIRONMENT,
                "audit_persist": self._audit_persist,
            },
        )

    # ========================================================================
    # SHUTDOWN
    # ========================================================================

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("LedgerApplication not initialized, nothing to shut down")
            return

        await self._teardown()
        self._initialized = False
        logger.info("Ledger application shut down")

    async def _teardown(self) -> None:
        if self.audit_consumer is not None:
            await self.audit_consumer.stop()
            self.audit_consumer = None

        await self.event_bus.drain()
        await DatabaseService.shutdown()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def __aenter__(self) -> LedgerApplication:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
