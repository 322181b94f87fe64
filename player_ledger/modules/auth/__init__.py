"""
Authorization: canonical lifecycle messages, signature recovery and the
role authority collaborator.
"""

from .messages import build_lifecycle_message, encode_lifecycle_payload
from .roles import Role, RoleAuthority, StaticRoleAuthority
from .verifier import SignatureVerifier, recover_signer

__all__ = [
    "build_lifecycle_message",
    "encode_lifecycle_payload",
    "Role",
    "RoleAuthority",
    "StaticRoleAuthority",
    "SignatureVerifier",
    "recover_signer",
]
