"""Security primitives and role capabilities."""

from .permissions import Capability, Role, has_capability
from .security import create_access_token, decode_token, get_password_hash, verify_password

__all__ = [
    "Capability",
    "Role",
    "has_capability",
    "create_access_token",
    "decode_token",
    "get_password_hash",
    "verify_password",
]
