"""
Canonical lifecycle message.

Both account creation and deletion are authorized over the same payload:

    keccak256(abi.encodePacked(address account, bytes32 salt, uint256 timestamp))

i.e. 20 + 32 + 32 = 84 bytes hashed to 32. Signers sign this hash with the
EIP-191 personal-message prefix; see `verifier.py`.

The payload carries no operation tag, so a (account, salt, timestamp) tuple
signed for creation is byte-identical to one signed for deletion. Salt and
timestamp uniqueness is the signer's responsibility; nothing here tracks
used salts or checks the timestamp against the clock.
"""

from __future__ import annotations

from typing import Any

from eth_abi.packed import encode_packed
from eth_utils import keccak

from player_ledger.core.validation import InputValidator

LIFECYCLE_MESSAGE_TYPES = ("address", "bytes32", "uint256")


def encode_lifecycle_payload(account: Any, salt: Any, timestamp: Any) -> bytes:
    """Tightly packed (account, salt, timestamp), before hashing."""
    address = InputValidator.validate_address(account, "account")
    salt_bytes = InputValidator.validate_bytes32(salt, "salt")
    ts = InputValidator.validate_uint256(timestamp, "timestamp")
    return encode_packed(list(LIFECYCLE_MESSAGE_TYPES), [address, salt_bytes, ts])


def build_lifecycle_message(account: Any, salt: Any, timestamp: Any) -> bytes:
    """
    Return the 32-byte hash admin and player must sign.

    Raises:
        ValidationError: malformed account, salt or timestamp
    """
    return keccak(encode_lifecycle_payload(account, salt, timestamp))
