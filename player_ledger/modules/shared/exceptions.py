"""
Domain exceptions raised by the ledger services.

Every check runs before any mutation, so a raised domain error always means
nothing was written. None of them is retryable: resubmitting the same request
fails the same way.

- Authorization: `InvalidAdminSignatureError`, `InvalidPlayerSignatureError`
  (both carry the identity actually recovered from the signature)
- Preconditions: `AccountAlreadyExistsError`, `AccountNotFoundError`,
  `NotSelfOrAdminError`, `NotAdminError`
- Input: `ValidationError`
- Arithmetic: `PackedValueOverflowError`
"""

from __future__ import annotations

from typing import Optional

from player_ledger.core.exceptions import ErrorSeverity, StructuredError


class LedgerDomainException(StructuredError):
    """Base for every rejection a ledger request can meet."""


# ============================================================================
# Authorization
# ============================================================================


class InvalidAdminSignatureError(LedgerDomainException):
    """`recovered` is None when the signature could not be recovered at all."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, recovered: Optional[str]) -> None:
        self.recovered = recovered
        super().__init__(
            f"Invalid admin signature: recovered signer {recovered or 'unrecoverable'} "
            "does not hold the admin role",
            details={"recovered": recovered},
            error_code="INVALID_ADMIN_SIGNATURE",
        )


class InvalidPlayerSignatureError(LedgerDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, expected: str, recovered: Optional[str]) -> None:
        self.expected = expected
        self.recovered = recovered
        super().__init__(
            f"Invalid player signature: expected {expected}, "
            f"recovered {recovered or 'unrecoverable'}",
            details={"expected": expected, "recovered": recovered},
            error_code="INVALID_PLAYER_SIGNATURE",
        )


# ============================================================================
# Preconditions
# ============================================================================


class AccountAlreadyExistsError(LedgerDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(
            f"Account already exists: {account}",
            details={"account": account},
            error_code="ACCOUNT_ALREADY_EXISTS",
        )


class AccountNotFoundError(LedgerDomainException):
    """A ledger write targeted an account that is not live."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(
            f"Account does not exist: {account}",
            details={"account": account},
            error_code="ACCOUNT_NOT_FOUND",
        )


class NotSelfOrAdminError(LedgerDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, caller: str, account: str) -> None:
        self.caller = caller
        self.account = account
        super().__init__(
            f"Caller {caller} is neither {account} nor an admin",
            details={"caller": caller, "account": account},
            error_code="NOT_SELF_OR_ADMIN",
        )


class NotAdminError(LedgerDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__(
            f"Caller {caller} does not hold the admin role",
            details={"caller": caller},
            error_code="NOT_ADMIN",
        )


# ============================================================================
# Input & Arithmetic
# ============================================================================


class ValidationError(LedgerDomainException):
    """Input rejected before it reached a service. `field` names the culprit."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class PackedValueOverflowError(LedgerDomainException):
    """A packed half (gold, marble, draws_per_match, draw_length) left uint128."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, value: int) -> None:
        self.field = field
        self.value = value
        # Stringified: the value may not fit a JSON number.
        super().__init__(
            f"{field} out of uint128 range: {value}",
            details={"field": field, "value": str(value)},
            error_code=f"PACKED_OVERFLOW_{field.upper()}",
        )
