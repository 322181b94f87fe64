"""
Role authority collaborator.

Role administration (granting and revoking) belongs to an external system.
The ledger only asks `has_role(identity, role)`. `StaticRoleAuthority` is
the in-process implementation seeded from `Config.ADMIN_ADDRESSES`.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Protocol, Set, runtime_checkable

from eth_utils import is_address, to_checksum_address

from player_ledger.core.logging.logger import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    ADMIN = "admin"


@runtime_checkable
class RoleAuthority(Protocol):
    def has_role(self, identity: str, role: Role) -> bool:
        ...


class StaticRoleAuthority:
    """
    In-memory role table.

    Identities are compared in checksummed form, so callers may pass any
    casing. Malformed identities never hold a role.
    """

    def __init__(self, roles: Optional[Mapping[Role, Iterable[str]]] = None) -> None:
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        for role, identities in (roles or {}).items():
            for identity in identities:
                self.grant(identity, role)

    @classmethod
    def from_admins(cls, admins: Iterable[str]) -> StaticRoleAuthority:
        return cls({Role.ADMIN: list(admins)})

    @staticmethod
    def _normalize(identity: str) -> Optional[str]:
        if not isinstance(identity, str) or not is_address(identity):
            return None
        return to_checksum_address(identity)

    def has_role(self, identity: str, role: Role) -> bool:
        normalized = self._normalize(identity)
        return normalized is not None and normalized in self._members[role]

    def grant(self, identity: str, role: Role) -> None:
        normalized = self._normalize(identity)
        if normalized is None:
            raise ValueError(f"Cannot grant {role.value} to malformed identity {identity!r}")
        self._members[role].add(normalized)
        logger.info(
            "Role granted",
            extra={"identity": normalized, "role": role.value},
        )

    def revoke(self, identity: str, role: Role) -> None:
        normalized = self._normalize(identity)
        if normalized is not None:
            self._members[role].discard(normalized)
            logger.info(
                "Role revoked",
                extra={"identity": normalized, "role": role.value},
            )

    def members(self, role: Role) -> Set[str]:
        return set(self._members[role])
