"""Authentication routes"""
from fastapi import APIRouter, Depends
from typing import Optional

from apps.api.auth.dependencies import get_current_user
from apps.api.auth.models import CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
async def get_me(current_user: Optional[CurrentUser] = Depends(get_current_user)):
    """
    Identity resolved from the bearer token.
    Returns authenticated=false if no token was sent.
    """
    if not current_user:
        return {"authenticated": False, "user": None}

    return {
        "authenticated": True,
        "user": {
            "id": current_user.id,
            "email": current_user.email,
            "role": current_user.role,
            "is_admin": current_user.is_admin(),
        }
    }
