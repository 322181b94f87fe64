"""Account liveness and lifecycle preconditions."""

from .registry import AccountRepository, IdentityRegistry

__all__ = ["AccountRepository", "IdentityRegistry"]
