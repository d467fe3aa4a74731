"""Shared fixtures: throwaway SQLite store, temporary public root, test images"""
import io
import os
from datetime import datetime, timedelta

import pytest
from jose import jwt
from PIL import Image

from apps.api.auth.models import CurrentUser
from apps.api.services.media_storage import StorageSettings
from apps.api.storage.portfolio_store import PortfolioStore

os.environ.setdefault("JWT_SECRET", "test-secret-for-development-only")


@pytest.fixture
def make_image():
    """Factory for in-memory test images"""
    def _make(size=(100, 100), fmt="JPEG", color="red", mode="RGB") -> bytes:
        img = Image.new(mode, size, color=color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()
    return _make


@pytest.fixture
def jpeg_bytes(make_image):
    return make_image()


@pytest.fixture
def make_token():
    """Factory for signed test JWTs"""
    def _make(user_id: str, email: str = None, role: str = "user") -> str:
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "aud": "art-share",
            "exp": datetime.utcnow() + timedelta(hours=1),
            "iat": datetime.utcnow()
        }
        return jwt.encode(payload, os.environ["JWT_SECRET"], algorithm="HS256")
    return _make


@pytest.fixture
def public_root(tmp_path, monkeypatch):
    """PUBLIC_ROOT pointed at a fresh directory; uploads land in <root>/uploads"""
    root = tmp_path / "public"
    root.mkdir()
    monkeypatch.setenv("PUBLIC_ROOT", str(root))
    return root


@pytest.fixture
def upload_root(public_root):
    return public_root / "uploads"


@pytest.fixture
def store(tmp_path):
    return PortfolioStore(f"sqlite:///{tmp_path / 'art_share.db'}")


@pytest.fixture
def settings():
    return StorageSettings()


@pytest.fixture
def admin():
    return CurrentUser(id="admin-1", email="admin@example.com", role="admin")
