"""
Input Validation Layer

Purpose
-------
Centralized validation for every value that crosses the ledger boundary:
account addresses, salts, timestamps, signatures, secondary ID lists and
packed-half amounts. Values are normalized on the way in so the services
only ever see canonical forms (checksummed addresses, 32-byte salts, Python
ints).

Non-Responsibilities
--------------------
- Signature recovery and authority checks (modules.auth)
- Existence preconditions (modules.identity)

Observability
-------------
Every failure is logged at debug level with field name, raw value (repr)
and reason before `ValidationError` is raised.
"""

from __future__ import annotations

from typing import Any, List, NoReturn, Optional

from eth_utils import is_checksum_address, is_hex_address, to_checksum_address

from player_ledger.core.logging.logger import get_logger
from player_ledger.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

UINT128_MAX = (1 << 128) - 1
UINT256_MAX = (1 << 256) - 1


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


def _decode_hex(value: str, field_name: str) -> bytes:
    digits = value[2:] if value[:2].lower() == "0x" else value
    if len(digits) % 2:
        _raise_validation_error(field_name, value, "Hex string has an odd length")
    try:
        return bytes.fromhex(digits)
    except ValueError:
        _raise_validation_error(field_name, value, "Not a valid hex string")


class InputValidator:
    """
    Stateless validators. Each returns the normalized value or raises
    `ValidationError`.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> int:
        """
        Validate and convert value to an integer with optional bounds.

        Booleans are rejected even though they are ints.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number, got a bool")

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            _raise_validation_error(
                field_name,
                value,
                f"Must be a whole number, got '{value}'",
            )

        if isinstance(value, float) and value != int_value:
            _raise_validation_error(field_name, value, "Must be a whole number")

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Must be at least {min_value}, got {int_value}",
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Cannot exceed {max_value}, got {int_value}",
            )

        return int_value

    @staticmethod
    def validate_uint256(value: Any, field_name: str) -> int:
        return InputValidator.validate_integer(value, field_name, 0, UINT256_MAX)

    @staticmethod
    def validate_uint128(value: Any, field_name: str) -> int:
        return InputValidator.validate_integer(value, field_name, 0, UINT128_MAX)

    # =========================================================================
    # IDENTITY & PAYLOAD VALIDATION
    # =========================================================================

    @staticmethod
    def validate_address(value: Any, field_name: str = "account") -> str:
        """
        Validate an EVM address and return its EIP-55 checksummed form.

        Accepts a 20-byte value or a ``0x`` hex string. Mixed-case strings
        must carry a correct checksum.
        """
        if isinstance(value, (bytes, bytearray)):
            if len(value) != 20:
                _raise_validation_error(
                    field_name, value, f"Address must be 20 bytes, got {len(value)}"
                )
            return to_checksum_address(bytes(value))

        if not isinstance(value, str) or not is_hex_address(value):
            _raise_validation_error(field_name, value, "Must be a 20-byte hex address")

        digits = value[2:] if value[:2].lower() == "0x" else value
        mixed_case = digits != digits.lower() and digits != digits.upper()
        if mixed_case and not is_checksum_address(value):
            _raise_validation_error(field_name, value, "Mixed-case address fails its EIP-55 checksum")

        return to_checksum_address(value)

    @staticmethod
    def validate_bytes32(value: Any, field_name: str = "salt") -> bytes:
        """
        Normalize a bytes32 value.

        Accepts exactly 32 bytes, a 64-digit hex string, or an unsigned int
        (big-endian, left-padded, as a uint256 cast to bytes32).
        """
        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be bytes32, got a bool")

        if isinstance(value, int):
            number = InputValidator.validate_uint256(value, field_name)
            return number.to_bytes(32, "big")

        if isinstance(value, str):
            value = _decode_hex(value, field_name)

        if not isinstance(value, (bytes, bytearray)):
            _raise_validation_error(field_name, value, "Must be bytes, hex or int")

        if len(value) != 32:
            _raise_validation_error(
                field_name, value, f"Must be exactly 32 bytes, got {len(value)}"
            )

        return bytes(value)

    @staticmethod
    def validate_signature(value: Any, field_name: str = "signature") -> bytes:
        """
        Decode a signature to raw bytes.

        Length and curve validity are left to the verifier, which reports
        unrecoverable signatures as authorization failures.
        """
        if isinstance(value, str):
            return _decode_hex(value, field_name)

        if isinstance(value, (bytes, bytearray)):
            return bytes(value)

        _raise_validation_error(field_name, value, "Must be bytes or a hex string")

    @staticmethod
    def validate_id_list(
        values: Any,
        field_name: str,
        max_count: Optional[int] = None,
    ) -> List[int]:
        """
        Validate a list of secondary IDs (uint256 each).

        Order is preserved and duplicates are kept, since bulk reads return
        one element per requested ID.
        """
        if values is None:
            return []

        if not isinstance(values, (list, tuple)):
            _raise_validation_error(field_name, values, "Must be a list")

        if max_count is not None and len(values) > max_count:
            _raise_validation_error(
                field_name,
                values,
                f"Cannot provide more than {max_count} items",
            )

        validated_ids: List[int] = []
        for idx, raw_value in enumerate(values):
            try:
                validated_ids.append(
                    InputValidator.validate_uint256(raw_value, f"{field_name}[{idx}]")
                )
            except ValidationError as exc:
                _raise_validation_error(
                    field_name,
                    raw_value,
                    f"Item {idx}: {exc.validation_message}",
                )

        return validated_ids

    @staticmethod
    def validate_attributes(value: Any, field_name: str = "attributes") -> dict:
        """Catalog attributes must be a JSON-style dict with string keys."""
        if value is None:
            return {}
        if not isinstance(value, dict):
            _raise_validation_error(field_name, value, "Must be a mapping")
        if not all(isinstance(key, str) for key in value):
            _raise_validation_error(field_name, value, "Keys must be strings")
        return dict(value)
