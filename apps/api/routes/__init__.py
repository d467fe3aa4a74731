"""API Routes package"""
from . import admin, auth, health, portfolios, uploads

__all__ = ["admin", "auth", "health", "portfolios", "uploads"]
