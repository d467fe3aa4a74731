"""
Authentication module.
Resolves the caller identity from a bearer JWT issued by the login service.
"""
from apps.api.auth.models import CurrentUser, TokenPayload
from apps.api.auth.dependencies import (
    get_current_user,
    require_auth,
    require_admin,
)

__all__ = [
    "CurrentUser",
    "TokenPayload",
    "get_current_user",
    "require_auth",
    "require_admin",
]
