"""
Unit tests for lifecycle message construction.

Covers the packed payload layout, hashing, and input normalization.
"""

import pytest
from eth_utils import keccak

from player_ledger.modules.auth.messages import (
    build_lifecycle_message,
    encode_lifecycle_payload,
)
from player_ledger.modules.shared.exceptions import ValidationError

ACCOUNT = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"


@pytest.mark.unit
class TestPayloadLayout:
    """Test abi.encodePacked(address, bytes32, uint256) layout."""

    def test_payload_is_84_bytes(self):
        payload = encode_lifecycle_payload(ACCOUNT, 1, 1000)

        assert len(payload) == 20 + 32 + 32

    def test_payload_fields_in_order(self):
        """Test address, then salt, then big-endian timestamp."""
        # Arrange
        salt = bytes(range(32))

        # Act
        payload = encode_lifecycle_payload(ACCOUNT, salt, 1000)

        # Assert
        assert payload[:20] == bytes.fromhex(ACCOUNT[2:])
        assert payload[20:52] == salt
        assert payload[52:] == (1000).to_bytes(32, "big")

    def test_integer_salt_is_left_padded(self):
        """Test that salt=1 encodes like bytes32(uint256(1))."""
        payload = encode_lifecycle_payload(ACCOUNT, 1, 0)

        assert payload[20:52] == b"\x00" * 31 + b"\x01"


@pytest.mark.unit
class TestLifecycleHash:
    """Test keccak256 over the packed payload."""

    def test_hash_is_keccak_of_payload(self):
        payload = encode_lifecycle_payload(ACCOUNT, 1, 1000)

        assert build_lifecycle_message(ACCOUNT, 1, 1000) == keccak(payload)

    def test_hash_is_32_bytes(self):
        assert len(build_lifecycle_message(ACCOUNT, 1, 1000)) == 32

    def test_address_casing_does_not_change_hash(self):
        assert build_lifecycle_message(ACCOUNT.lower(), 1, 1000) == build_lifecycle_message(
            ACCOUNT, 1, 1000
        )

    def test_salt_forms_are_equivalent(self):
        """Test int, bytes and hex forms of the same salt."""
        as_bytes = (2).to_bytes(32, "big")

        expected = build_lifecycle_message(ACCOUNT, 2, 2000)

        assert build_lifecycle_message(ACCOUNT, as_bytes, 2000) == expected
        assert build_lifecycle_message(ACCOUNT, "0x" + as_bytes.hex(), 2000) == expected

    @pytest.mark.parametrize(
        "args",
        [
            ("0xAb8483F64d9C6d1EcF9b849Ae677dD3315835cb2", 1, 1000),
            (ACCOUNT, 2, 1000),
            (ACCOUNT, 1, 1001),
        ],
    )
    def test_any_field_change_changes_hash(self, args):
        assert build_lifecycle_message(*args) != build_lifecycle_message(ACCOUNT, 1, 1000)


@pytest.mark.unit
class TestMessageValidation:
    """Test rejection of malformed inputs."""

    def test_bad_address(self):
        with pytest.raises(ValidationError) as exc_info:
            build_lifecycle_message("0x1234", 1, 1000)

        assert exc_info.value.field == "account"

    def test_bad_checksum(self):
        """Test that a mixed-case address with a wrong checksum is rejected."""
        corrupted = ACCOUNT[:3] + ACCOUNT[3].lower() + ACCOUNT[4:]

        with pytest.raises(ValidationError):
            build_lifecycle_message(corrupted, 1, 1000)

    def test_short_salt(self):
        with pytest.raises(ValidationError) as exc_info:
            build_lifecycle_message(ACCOUNT, b"\x01" * 31, 1000)

        assert exc_info.value.field == "salt"

    def test_negative_timestamp(self):
        with pytest.raises(ValidationError) as exc_info:
            build_lifecycle_message(ACCOUNT, 1, -1)

        assert exc_info.value.field == "timestamp"

    def test_timestamp_above_uint256(self):
        with pytest.raises(ValidationError):
            build_lifecycle_message(ACCOUNT, 1, 2**256)
