"""
Integration Tests for LedgerService
===================================

Test Coverage
-------------
- Currency credit/debit on packed balance halves, with overflow guards
- Progression overwrite
- Item grant/revoke, fragment accumulation, league result storage
- Admin gating and liveness requirement
- One audit entry per successful write, none on failure
- Concurrent writes on the same account
"""

import asyncio

import pytest
import pytest_asyncio

from player_ledger.database.models import AccountLedger
from player_ledger.domain.models import Balance, LeagueData, OwnedItem, OwnedItemFragment, Progression
from player_ledger.domain.packing import UINT128_MAX
from player_ledger.modules.shared.exceptions import (
    AccountNotFoundError,
    NotAdminError,
    PackedValueOverflowError,
    ValidationError,
)
from player_ledger.modules.ledger.service import INT64_MAX
from player_ledger.modules.shared.base_repository import BaseRepository


@pytest_asyncio.fixture
async def live_account(create_account, player, audit_sink):
    """A created account with the creation entry cleared from the sink."""
    await create_account(player.address)
    audit_sink.entries.clear()
    return player.address


# ============================================================================
# CURRENCY
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestCurrency:
    """Test packed balance writes."""

    async def test_credit_updates_both_halves(self, ledger_service, account_service, admin, live_account):
        # Act
        balance = await ledger_service.credit_currency(admin.address, live_account, gold=100, marble=5)

        # Assert
        assert balance == Balance(gold=100, marble=5)
        snapshot = await account_service.get_account(admin.address, live_account)
        assert snapshot.balance == Balance(gold=100, marble=5)

    async def test_halves_are_independent(self, ledger_service, admin, live_account):
        """Test that filling gold never carries into marble."""
        await ledger_service.credit_currency(admin.address, live_account, gold=UINT128_MAX)

        balance = await ledger_service.debit_currency(admin.address, live_account, gold=1)

        assert balance == Balance(gold=UINT128_MAX - 1, marble=0)

    async def test_debit_below_zero_rejected(
        self, ledger_service, account_service, admin, live_account, audit_sink
    ):
        # Arrange
        await ledger_service.credit_currency(admin.address, live_account, gold=10, marble=10)
        audit_sink.entries.clear()

        # Act
        with pytest.raises(PackedValueOverflowError) as exc_info:
            await ledger_service.debit_currency(admin.address, live_account, gold=5, marble=11)

        # Assert
        assert exc_info.value.field == "marble"
        snapshot = await account_service.get_account(admin.address, live_account)
        assert snapshot.balance == Balance(gold=10, marble=10)
        assert audit_sink.entries == []

    async def test_credit_past_uint128_rejected(self, ledger_service, account_service, admin, live_account):
        await ledger_service.credit_currency(admin.address, live_account, marble=UINT128_MAX)

        with pytest.raises(PackedValueOverflowError):
            await ledger_service.credit_currency(admin.address, live_account, marble=1)

        snapshot = await account_service.get_account(admin.address, live_account)
        assert snapshot.balance.marble == UINT128_MAX

    async def test_amount_outside_uint128_rejected(self, ledger_service, admin, live_account):
        with pytest.raises(ValidationError):
            await ledger_service.credit_currency(admin.address, live_account, gold=UINT128_MAX + 1)

    async def test_audit_details_are_strings(self, ledger_service, admin, live_account, audit_sink):
        await ledger_service.credit_currency(admin.address, live_account, gold=3)

        kind, account, details = audit_sink.entries[0]
        assert kind == "ledger.currency.credited"
        assert account == live_account
        assert details == {
            "caller": admin.address,
            "gold_delta": "3",
            "marble_delta": "0",
            "gold": "3",
            "marble": "0",
        }

    async def test_concurrent_credits_all_apply(self, ledger_service, admin, live_account, audit_sink):
        """Test that the account lock prevents lost updates."""
        # Act
        await asyncio.gather(
            *[
                ledger_service.credit_currency(admin.address, live_account, gold=1)
                for _ in range(10)
            ]
        )

        # Assert
        balance = await ledger_service.credit_currency(admin.address, live_account)
        assert balance.gold == 10
        assert audit_sink.kinds().count("ledger.currency.credited") == 11


# ============================================================================
# PROGRESSION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestProgression:
    """Test progression overwrite."""

    async def test_set_progression_overwrites(self, ledger_service, account_service, admin, live_account):
        await ledger_service.set_progression(admin.address, live_account, 3, 45)
        await ledger_service.set_progression(admin.address, live_account, 4, 30)

        snapshot = await account_service.get_account(admin.address, live_account)

        assert snapshot.progression == Progression(draws_per_match=4, draw_length=30)
        assert snapshot.balance == Balance()


# ============================================================================
# HOLDINGS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestItems:
    """Test item grant and revoke."""

    async def test_grant_item_with_attributes(self, ledger_service, account_service, admin, live_account):
        # Act
        item = await ledger_service.grant_item(
            admin.address, live_account, 2**200, {"skin": "gold", "level": 3}
        )

        # Assert
        assert item == OwnedItem(owned=True, attributes={"skin": "gold", "level": 3})
        snapshot = await account_service.get_account(admin.address, live_account, [2**200])
        assert snapshot.items == (item,)

    async def test_regrant_replaces_attributes(self, ledger_service, account_service, admin, live_account):
        await ledger_service.grant_item(admin.address, live_account, 1, {"skin": "gold"})
        await ledger_service.grant_item(admin.address, live_account, 1)

        snapshot = await account_service.get_account(admin.address, live_account, [1])

        assert snapshot.items == (OwnedItem(owned=True),)

    async def test_revoke_item(self, ledger_service, account_service, admin, live_account, audit_sink):
        # Arrange
        await ledger_service.grant_item(admin.address, live_account, 1)

        # Act
        first = await ledger_service.revoke_item(admin.address, live_account, 1)
        second = await ledger_service.revoke_item(admin.address, live_account, 1)

        # Assert
        assert (first, second) == (True, False)
        snapshot = await account_service.get_account(admin.address, live_account, [1])
        assert snapshot.items == (OwnedItem(),)
        assert audit_sink.kinds() == [
            "ledger.item.granted",
            "ledger.item.revoked",
            "ledger.item.revoked",
        ]


@pytest.mark.integration
@pytest.mark.database
class TestFragments:
    """Test fragment accumulation."""

    async def test_amounts_accumulate(self, ledger_service, account_service, admin, live_account):
        # Act
        await ledger_service.grant_fragment(admin.address, live_account, 4, 3, {"rarity": "epic"})
        fragment = await ledger_service.grant_fragment(admin.address, live_account, 4, 2)

        # Assert
        assert fragment == OwnedItemFragment(owned=True, amount=5, attributes={"rarity": "epic"})
        snapshot = await account_service.get_account(admin.address, live_account, [], [4])
        assert snapshot.fragments == (fragment,)

    async def test_attributes_replaced_when_given(self, ledger_service, admin, live_account):
        await ledger_service.grant_fragment(admin.address, live_account, 4, 1, {"rarity": "epic"})

        fragment = await ledger_service.grant_fragment(
            admin.address, live_account, 4, 1, {"rarity": "rare"}
        )

        assert fragment.attributes == {"rarity": "rare"}

    @pytest.mark.parametrize("amount", [0, -1, INT64_MAX + 1])
    async def test_amount_out_of_range_rejected(self, ledger_service, admin, live_account, amount):
        with pytest.raises(ValidationError) as exc_info:
            await ledger_service.grant_fragment(admin.address, live_account, 4, amount)

        assert exc_info.value.field == "amount"

    async def test_total_capped_at_int64(self, ledger_service, account_service, admin, live_account):
        # Arrange
        await ledger_service.grant_fragment(admin.address, live_account, 4, INT64_MAX)

        # Act
        with pytest.raises(ValidationError):
            await ledger_service.grant_fragment(admin.address, live_account, 4, 1)

        # Assert
        snapshot = await account_service.get_account(admin.address, live_account, [], [4])
        assert snapshot.fragments[0].amount == INT64_MAX


@pytest.mark.integration
@pytest.mark.database
class TestLeague:
    """Test league result storage."""

    async def test_result_replaces_previous(self, ledger_service, account_service, admin, live_account):
        # Act
        await ledger_service.record_league_result(admin.address, live_account, 1, 100, 5, 2)
        await ledger_service.record_league_result(admin.address, live_account, 1, 120, 6, 2)
        await ledger_service.record_league_result(admin.address, live_account, 2, 10, 1, 0)

        # Assert
        snapshot = await account_service.get_account(admin.address, live_account, [], [], [2, 1])
        assert snapshot.league_records == (
            LeagueData(points=10, wins=1, losses=0),
            LeagueData(points=120, wins=6, losses=2),
        )

    async def test_negative_counter_rejected(self, ledger_service, admin, live_account):
        with pytest.raises(ValidationError) as exc_info:
            await ledger_service.record_league_result(admin.address, live_account, 1, 10, -1, 0)

        assert exc_info.value.field == "wins"


# ============================================================================
# AUTHORIZATION & LIVENESS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestPreconditions:
    """Test admin gating and the liveness requirement."""

    async def test_non_admin_rejected(self, ledger_service, account_service, player, live_account, audit_sink):
        # Act
        with pytest.raises(NotAdminError) as exc_info:
            await ledger_service.credit_currency(player.address, live_account, gold=1)

        # Assert
        assert exc_info.value.caller == player.address
        snapshot = await account_service.get_account(player.address, live_account)
        assert snapshot.balance == Balance()
        assert audit_sink.entries == []

    async def test_unknown_account_rejected(self, ledger_service, admin, stranger, audit_sink):
        with pytest.raises(AccountNotFoundError) as exc_info:
            await ledger_service.grant_item(admin.address, stranger.address, 1)

        assert exc_info.value.account == stranger.address
        assert audit_sink.entries == []

    async def test_deleted_account_rejected(
        self, ledger_service, account_service, admin, player, signer, live_account
    ):
        # Arrange
        message_hash = account_service.hash_lifecycle_message(live_account, 2, 2000)
        await account_service.delete_account(
            live_account,
            [],
            [],
            [],
            2,
            2000,
            signer(admin, message_hash),
            signer(player, message_hash),
        )

        # Act & Assert
        with pytest.raises(AccountNotFoundError):
            await ledger_service.record_league_result(admin.address, live_account, 1, 1, 1, 1)

    async def test_services_share_the_given_lock_registry(self, ledger_service, account_service, locks):
        """Test that an empty registry passed in is used, not replaced."""
        assert ledger_service._locks is locks
        assert account_service._locks is locks

    async def test_credit_racing_delete_never_lands(
        self, ledger_service, account_service, admin, player, signer, live_account
    ):
        """Test that a write queued behind a delete finds the account gone."""
        # Arrange
        await ledger_service.credit_currency(admin.address, live_account, gold=5)
        message_hash = account_service.hash_lifecycle_message(live_account, 2, 2000)

        # Act
        deleted, credited = await asyncio.gather(
            account_service.delete_account(
                live_account,
                [],
                [],
                [],
                2,
                2000,
                signer(admin, message_hash),
                signer(player, message_hash),
            ),
            ledger_service.credit_currency(admin.address, live_account, gold=7),
            return_exceptions=True,
        )

        # Assert
        assert deleted == live_account
        assert isinstance(credited, AccountNotFoundError)
        assert await account_service.account_exists(live_account) is False
        snapshot = await account_service.get_account(admin.address, live_account)
        assert snapshot.balance == Balance(gold=0, marble=0)

    async def test_write_locks_ledger_row_first(self, ledger_service, admin, live_account, mocker):
        """Test that the first ledger-row read of a write takes the row lock."""
        # Arrange
        get_spy = mocker.spy(BaseRepository, "get")

        # Act
        await ledger_service.credit_currency(admin.address, live_account, gold=1)

        # Assert
        ledger_reads = [
            call for call in get_spy.call_args_list if call.args[0].model_class is AccountLedger
        ]
        assert ledger_reads[0].kwargs["for_update"] is True

    async def test_malformed_caller_rejected(self, ledger_service, live_account):
        with pytest.raises(ValidationError) as exc_info:
            await ledger_service.set_progression("0x1234", live_account, 1, 1)

        assert exc_info.value.field == "caller"
