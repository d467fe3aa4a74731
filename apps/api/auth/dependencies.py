"""
FastAPI dependencies for authentication and authorization.
Tokens are issued by the login service; this module only validates them.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional
import os
import logging

from apps.api.auth.models import CurrentUser, TokenPayload

logger = logging.getLogger("artshare.auth")

# HTTP Bearer token security scheme (extracts "Bearer <token>" from Authorization header)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """
    Extract and validate the JWT from the Authorization header.
    Returns None for anonymous users.

    Raises:
        HTTPException: 401 if token is invalid or expired
        HTTPException: 500 if JWT secret is not configured
    """
    if not credentials:
        return None

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        logger.error("JWT_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not configured"
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            jwt_secret,
            algorithms=["HS256"],
            audience=os.getenv("JWT_AUDIENCE", "art-share"),
            options={"verify_aud": True, "verify_exp": True}
        )
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError) as e:
        logger.warning(f"JWT validation failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = "admin" if (token_data.role or "").lower() == "admin" else "user"
    return CurrentUser(id=token_data.sub, email=token_data.email, role=role)


async def require_auth(
    current_user: Optional[CurrentUser] = Depends(get_current_user)
) -> CurrentUser:
    """
    Require authentication (401 if not logged in).

    Usage:
        @router.post("/portfolios/{portfolio_id}/items")
        async def upload(user: CurrentUser = Depends(require_auth)):
            # user is guaranteed to be authenticated
    """
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user


async def require_admin(
    current_user: CurrentUser = Depends(require_auth)
) -> CurrentUser:
    """Require admin role (403 if not admin)."""
    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
