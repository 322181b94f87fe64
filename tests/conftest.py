"""
Pytest Configuration and Fixtures for the Player Ledger
=======================================================

Purpose
-------
Shared fixtures for the ledger test suite: signing keys, a temporary SQLite
database, wired services, and mocks for the collaborators services depend on.

Architecture Notes
------------------
- Unit tests use mocks or pure domain objects (fast, no database)
- Integration tests run against a fresh SQLite file per test via aiosqlite
- Tests marked `postgres` run against a PostgreSQL testcontainer, where
  SELECT ... FOR UPDATE actually locks rows
- Keys are fixed so recovered addresses are stable across runs
- Signatures use the EIP-191 personal-message flow, same as clients
"""

from __future__ import annotations

import os

# Config is read once on import; these must be set before the package loads.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from typing import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from testcontainers.postgres import PostgresContainer

from player_ledger.core.config import Config
from player_ledger.core.database import DatabaseService
from player_ledger.core.event import EventBus
from player_ledger.core.logging.logger import get_logger
from player_ledger.modules.account import AccountLockRegistry, AccountService
from player_ledger.modules.audit import MemoryAuditSink
from player_ledger.modules.auth import SignatureVerifier, StaticRoleAuthority
from player_ledger.modules.identity import IdentityRegistry
from player_ledger.modules.ledger import LedgerService, LedgerStore

logger = get_logger(__name__)

ADMIN_KEY = "0x" + "11" * 32
PLAYER_KEY = "0x" + "22" * 32
STRANGER_KEY = "0x" + "33" * 32
SECOND_ADMIN_KEY = "0x" + "44" * 32


# ============================================================================
# SIGNING FIXTURES
# ============================================================================


def sign_hash(key, message_hash: bytes) -> bytes:
    """Personal-sign a 32-byte lifecycle hash with `key`."""
    signed = Account.sign_message(encode_defunct(primitive=message_hash), private_key=key)
    return bytes(signed.signature)


@pytest.fixture
def admin() -> LocalAccount:
    return Account.from_key(ADMIN_KEY)


@pytest.fixture
def second_admin() -> LocalAccount:
    return Account.from_key(SECOND_ADMIN_KEY)


@pytest.fixture
def player() -> LocalAccount:
    return Account.from_key(PLAYER_KEY)


@pytest.fixture
def stranger() -> LocalAccount:
    return Account.from_key(STRANGER_KEY)


@pytest.fixture
def signer() -> Callable[[LocalAccount, bytes], bytes]:
    """
    Sign a lifecycle hash as a given account.

    Usage:
        signature = signer(admin, service.hash_lifecycle_message(a, 1, 1000))
    """

    def _sign(account: LocalAccount, message_hash: bytes) -> bytes:
        return sign_hash(account.key, message_hash)

    return _sign


# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================


@pytest.fixture
def role_authority(admin, second_admin) -> StaticRoleAuthority:
    return StaticRoleAuthority.from_admins([admin.address, second_admin.address])


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(listener_timeout_seconds=5)


@pytest.fixture
def mock_event_bus(mocker):
    """Mock EventBus for unit tests that only check publishing."""
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock(side_effect=lambda name, cb, **kw: kw.get("identifier") or name)
    mock_bus.unsubscribe = mocker.MagicMock(return_value=True)
    return mock_bus


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest_asyncio.fixture
async def database(database_url) -> AsyncGenerator[type[DatabaseService], None]:
    """
    Initialized DatabaseService with a fresh schema.

    Scope: function (new SQLite file per test, clean slate)
    """
    await DatabaseService.initialize(database_url)
    await DatabaseService.create_schema()
    try:
        yield DatabaseService
    finally:
        await DatabaseService.shutdown()


# ============================================================================
# TESTCONTAINERS FIXTURES (PostgreSQL row-lock tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start a PostgreSQL testcontainer for the row-lock tests.

    Scope: session (container persists across all postgres tests)
    Skips the requesting tests when no Docker daemon is reachable.
    """
    logger.info("Starting PostgreSQL testcontainer...")
    try:
        container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    logger.info("PostgreSQL testcontainer started", extra={"url_scheme": "postgresql+asyncpg"})
    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def postgres_database(
    postgres_container: PostgresContainer,
) -> AsyncGenerator[type[DatabaseService], None]:
    """
    DatabaseService bound to the container, with the schema rebuilt.

    Scope: function (tables dropped and recreated per test)
    """
    await DatabaseService.initialize(postgres_container.get_connection_url())
    await DatabaseService.drop_schema()
    await DatabaseService.create_schema()
    try:
        yield DatabaseService
    finally:
        await DatabaseService.shutdown()


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def locks() -> AccountLockRegistry:
    return AccountLockRegistry()


@pytest.fixture
def registry(role_authority) -> IdentityRegistry:
    return IdentityRegistry(role_authority)


@pytest.fixture
def store() -> LedgerStore:
    return LedgerStore()


@pytest.fixture
def account_service(database, role_authority, audit_sink, registry, store, locks) -> AccountService:
    return AccountService(
        Config,
        audit_sink,
        get_logger("tests.account_service"),
        verifier=SignatureVerifier(role_authority),
        registry=registry,
        store=store,
        locks=locks,
    )


@pytest.fixture
def ledger_service(database, audit_sink, registry, store, locks) -> LedgerService:
    return LedgerService(
        Config,
        audit_sink,
        get_logger("tests.ledger_service"),
        registry=registry,
        store=store,
        locks=locks,
    )


@pytest.fixture
def create_account(account_service, admin, signer):
    """
    Create `account` with a valid admin signature.

    Usage:
        await create_account(player.address)
    """

    async def _create(account: str, salt: int = 1, timestamp: int = 1000) -> str:
        message_hash = account_service.hash_lifecycle_message(account, salt, timestamp)
        return await account_service.create_account(
            account, salt, timestamp, signer(admin, message_hash)
        )

    return _create
