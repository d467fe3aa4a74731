from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class PortfolioItemOut(BaseModel):
    id: str
    kind: str
    url: str
    thumbnail: Optional[str] = None
    original_name: Optional[str] = None
    order: int
    portfolio_id: str
    created_at: Optional[str] = None


class PortfolioOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    cover: Optional[str] = None
    status: str
    is_public: bool
    view_count: int = 0
    user_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: Optional[List[PortfolioItemOut]] = None


class PortfolioPage(BaseModel):
    portfolios: List[PortfolioOut]
    total: int
    page: int
    limit: int


class ItemDeleted(BaseModel):
    success: bool
    id: str
    cover: Optional[str] = None


class CoverUpdate(BaseModel):
    cover: Optional[str] = None


class PortfolioCreate(BaseModel):
    title: str
    description: Optional[str] = None


class PortfolioUpdate(BaseModel):
    """Only the fields sent are changed"""
    title: Optional[str] = None
    description: Optional[str] = None
    cover: Optional[str] = None
    is_public: Optional[bool] = None


class BatchRequest(BaseModel):
    action: str
    ids: List[str] = Field(default_factory=list)


class BatchResponse(BaseModel):
    success: int
    failed: int
    errors: List[str] = Field(default_factory=list)
    blocked: List[str] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    deleted_count: int
    deleted: List[str]
    errors: List[str]
    storage_used: str


class StorageReport(BaseModel):
    storage_type: str
    storage_used: str
    storage_used_bytes: int
    portfolio_items: int
    albums: int
    portfolios: int
    pending_reviews: int


class SettingsOut(BaseModel):
    storage_type: str
    max_file_size: int
    local_storage_path: str
    require_approval: bool
    cos_secret_id: Optional[str] = None
    cos_bucket: Optional[str] = None
    cos_region: Optional[str] = None
    cos_configured: bool


class SettingsUpdate(BaseModel):
    """Runtime storage settings; the secret key is write-only"""
    storage_type: Optional[Literal["local", "cos"]] = None
    max_file_size: Optional[int] = Field(default=None, gt=0)
    local_storage_path: Optional[str] = None
    require_approval: Optional[bool] = None
    cos_secret_id: Optional[str] = None
    cos_secret_key: Optional[str] = None
    cos_bucket: Optional[str] = None
    cos_region: Optional[str] = None
