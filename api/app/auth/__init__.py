from .jwt import Principal, get_current_principal, require_admin, require_scope
from .tokens import create_access_token, decode_access_token

__all__ = [
    "Principal",
    "create_access_token",
    "decode_access_token",
    "get_current_principal",
    "require_admin",
    "require_scope",
]
