"""
Authentication models for the resolved caller identity and JWT payloads.
"""
from pydantic import BaseModel
from typing import Optional


class CurrentUser(BaseModel):
    """Represents the currently authenticated user from JWT"""
    id: str
    email: Optional[str] = None
    role: str = "user"  # 'user' or 'admin'

    model_config = {"frozen": True}  # Immutable

    def is_admin(self) -> bool:
        """Check if user has admin role"""
        return self.role == "admin"

    def can_view_portfolio(self, owner_id: Optional[str], visible: bool) -> bool:
        """
        Check if user can see a portfolio.

        Args:
            owner_id: Id of the portfolio owner
            visible: Whether the portfolio is approved and public

        Returns:
            True if user can access the portfolio
        """
        return visible or self.id == owner_id or self.is_admin()

    def can_modify_portfolio(self, owner_id: Optional[str]) -> bool:
        """Owners and admins may upload, delete items and change the cover"""
        return self.id == owner_id or self.is_admin()


class TokenPayload(BaseModel):
    """JWT token payload structure issued by the login service"""
    sub: str  # Subject (user ID)
    email: Optional[str] = None
    role: Optional[str] = "user"
    aud: str = "art-share"
    exp: Optional[int] = None  # Expiration timestamp
    iat: Optional[int] = None  # Issued at timestamp
