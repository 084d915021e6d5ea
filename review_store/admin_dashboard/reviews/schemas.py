from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ReviewModel(BaseModel):
    """Stored review as returned to callers; extra persisted fields pass through."""
    model_config = ConfigDict(extra="allow")

    id: str
    sku: Any = None
    rating: Any = None
    title: Any = None
    text: Any = None
    author: Any = None
    author_email: Any = None
    status: Any = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ReviewListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[Dict[str, Any]]
    total: int
    page: int
    page_size: int = Field(serialization_alias="pageSize")
    sort_by: str = Field(serialization_alias="sortBy")
    sort_dir: str = Field(serialization_alias="sortDir")


class BatchItemResult(BaseModel):
    id: Any = None
    success: bool
    review: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class BatchResultResponse(BaseModel):
    results: List[BatchItemResult]
