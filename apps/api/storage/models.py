from sqlalchemy.orm import declarative_base, mapped_column, relationship
from sqlalchemy import Integer, BigInteger, String, Text, Boolean, DateTime, ForeignKey
from datetime import datetime
import uuid

Base = declarative_base()

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

KIND_IMAGE = "image"
KIND_VIDEO = "video"


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Camp participant or administrator"""
    __tablename__ = "users"

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    email = mapped_column(String(255), unique=True, nullable=False, index=True)
    name = mapped_column(String(255), nullable=True)
    avatar = mapped_column(Text, nullable=True)  # storage URL
    role = mapped_column(String(16), default='user')  # 'user' or 'admin'
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    portfolios = relationship("Portfolio", back_populates="owner")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Portfolio(Base):
    """A user's collection of uploaded works"""
    __tablename__ = "portfolios"

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    title = mapped_column(String(255), nullable=False)
    description = mapped_column(Text, nullable=True)
    cover = mapped_column(Text, nullable=True)  # URL of an item, or set by an admin
    status = mapped_column(String(16), default=STATUS_PENDING, nullable=False, index=True)
    is_public = mapped_column(Boolean, default=False, nullable=False)
    view_count = mapped_column(Integer, default=0, nullable=False)
    user_id = mapped_column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = relationship("User", back_populates="portfolios")
    items = relationship(
        "PortfolioItem",
        back_populates="portfolio",
        order_by="PortfolioItem.order",
    )

    def __repr__(self):
        return f"<Portfolio(id={self.id}, status={self.status}, public={self.is_public})>"

    @property
    def is_visible(self):
        return self.status == STATUS_APPROVED and self.is_public


class PortfolioItem(Base):
    """One uploaded media asset"""
    __tablename__ = "portfolio_items"

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    kind = mapped_column(String(16), nullable=False)  # 'image' or 'video'
    url = mapped_column(Text, nullable=False)
    thumbnail = mapped_column(Text, nullable=True)
    original_name = mapped_column(String(512), nullable=True)  # display only
    order = mapped_column(Integer, default=0, nullable=False)
    portfolio_id = mapped_column(String(36), ForeignKey('portfolios.id'), nullable=False, index=True)
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    portfolio = relationship("Portfolio", back_populates="items")

    def __repr__(self):
        return f"<PortfolioItem(id={self.id}, kind={self.kind}, order={self.order})>"


class FeaturedPortfolio(Base):
    """Marker row placing a portfolio in the featured section"""
    __tablename__ = "featured_portfolios"

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    portfolio_id = mapped_column(String(36), ForeignKey('portfolios.id'), nullable=False, index=True)
    sort_order = mapped_column(Integer, default=0, nullable=False)
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Album(Base):
    """Home page carousel entry; link may point at /portfolio/{id}"""
    __tablename__ = "albums"

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    title = mapped_column(String(255), nullable=False)
    description = mapped_column(Text, nullable=True)
    cover = mapped_column(Text, nullable=True)
    link = mapped_column(String(512), nullable=True, index=True)
    is_active = mapped_column(Boolean, default=True, nullable=False)
    sort_order = mapped_column(Integer, default=0, nullable=False)
    created_at = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class SystemSettings(Base):
    """Single-row, admin-editable runtime configuration"""
    __tablename__ = "system_settings"

    id = mapped_column(String(32), primary_key=True, default="default")
    site_name = mapped_column(String(255), default="Art Share")
    site_description = mapped_column(Text, nullable=True)
    require_approval = mapped_column(Boolean, default=True, nullable=False)
    max_file_size = mapped_column(BigInteger, default=52428800, nullable=False)  # 50MB
    storage_type = mapped_column(String(16), default="local", nullable=False)  # 'local' or 'cos'
    local_storage_path = mapped_column(String(512), default="uploads", nullable=False)
    cos_secret_id = mapped_column(String(255), nullable=True)
    cos_secret_key = mapped_column(String(255), nullable=True)
    cos_bucket = mapped_column(String(255), nullable=True)
    cos_region = mapped_column(String(64), nullable=True)
    allow_registration = mapped_column(Boolean, default=True, nullable=False)
    updated_at = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


def portfolio_link(portfolio_id: str) -> str:
    """Carousel link value that targets a portfolio"""
    return f"/portfolio/{portfolio_id}"
