"""
Signature verification for lifecycle authorization.

Signatures are 65-byte secp256k1 (r, s, v) signatures over the EIP-191
personal-message wrapping of a 32-byte payload:

    keccak256("\\x19Ethereum Signed Message:\\n32" || payload)

so a signature produced for a raw-hash signing flow cannot be replayed here.

Two check modes:

- role mode (`verify_admin`): the recovered signer must hold `Role.ADMIN`
- identity mode (`verify_player`): the recovered signer must equal the
  expected account

Failures always carry the identity actually recovered, or None when the
signature could not be recovered at all. Verification has no side effects
beyond debug logging.
"""

from __future__ import annotations

from typing import Any, Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from player_ledger.core.logging.logger import get_logger
from player_ledger.core.validation import InputValidator
from player_ledger.modules.auth.roles import Role, RoleAuthority
from player_ledger.modules.shared.exceptions import (
    InvalidAdminSignatureError,
    InvalidPlayerSignatureError,
    ValidationError,
)

logger = get_logger(__name__)

SIGNATURE_LENGTH = 65
MESSAGE_HASH_LENGTH = 32


def recover_signer(message_hash: bytes, signature: Any) -> Optional[str]:
    """
    Recover the checksummed signer of `message_hash`, or None if the
    signature is malformed or does not correspond to a curve point.

    Raises:
        ValidationError: `message_hash` is not 32 bytes or `signature` is
            not bytes/hex
    """
    if not isinstance(message_hash, (bytes, bytearray)) or len(message_hash) != MESSAGE_HASH_LENGTH:
        raise ValidationError("message_hash", "Must be exactly 32 bytes")

    raw = InputValidator.validate_signature(signature)
    if len(raw) != SIGNATURE_LENGTH:
        logger.debug(
            "Signature has wrong length",
            extra={"length": len(raw), "expected": SIGNATURE_LENGTH},
        )
        return None

    try:
        return Account.recover_message(
            encode_defunct(primitive=bytes(message_hash)), signature=raw
        )
    except Exception as exc:
        # eth-keys reports bad v/r/s through several exception types.
        logger.debug(
            "Signature recovery failed",
            extra={"error": str(exc), "error_type": type(exc).__name__},
        )
        return None


class SignatureVerifier:
    """Checks lifecycle signatures against a role authority."""

    def __init__(self, role_authority: RoleAuthority) -> None:
        self._roles = role_authority

    def verify_admin(self, message_hash: bytes, signature: Any) -> str:
        """
        Require that `signature` was produced by an admin.

        Returns the recovered admin address.

        Raises:
            InvalidAdminSignatureError: signer is not an admin or the
                signature is unrecoverable
        """
        recovered = recover_signer(message_hash, signature)
        if recovered is None or not self._roles.has_role(recovered, Role.ADMIN):
            logger.debug(
                "Admin signature rejected",
                extra={"recovered": recovered},
            )
            raise InvalidAdminSignatureError(recovered)

        return recovered

    def verify_player(self, message_hash: bytes, signature: Any, expected: str) -> str:
        """
        Require that `signature` was produced by `expected` itself.

        Raises:
            InvalidPlayerSignatureError: signer differs from `expected` or
                the signature is unrecoverable
        """
        expected = InputValidator.validate_address(expected, "expected")
        recovered = recover_signer(message_hash, signature)
        if recovered != expected:
            logger.debug(
                "Player signature rejected",
                extra={"expected": expected, "recovered": recovered},
            )
            raise InvalidPlayerSignatureError(expected, recovered)

        return recovered

    def verify(
        self,
        message_hash: bytes,
        signature: Any,
        *,
        required_signer: Optional[str] = None,
        required_role: Optional[Role] = None,
    ) -> str:
        """
        Single entry point selecting the check mode. Exactly one of
        `required_signer` / `required_role` must be given.
        """
        if (required_signer is None) == (required_role is None):
            raise ValueError("Pass exactly one of required_signer or required_role")

        if required_signer is not None:
            return self.verify_player(message_hash, signature, required_signer)

        if required_role is Role.ADMIN:
            return self.verify_admin(message_hash, signature)

        raise ValueError(f"Unsupported role: {required_role}")
