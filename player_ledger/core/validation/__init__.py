"""
Validation primitives for the player ledger.

`InputValidator` normalizes every boundary value (addresses, salts,
timestamps, signatures, ID lists, amounts) before it reaches a service.
"""

from player_ledger.core.validation.input_validator import (
    UINT128_MAX,
    UINT256_MAX,
    InputValidator,
)

__all__ = [
    "InputValidator",
    "UINT128_MAX",
    "UINT256_MAX",
]
