from fastapi import APIRouter, Body, Depends, Query, status
from typing import Any, Dict, List, Optional
import logging

from review_store.auth.dependencies import AuthContext, require_auth
from review_store.db.main import get_repository
from review_store.db.repository import ReviewRepository
from .schemas import BatchResultResponse, ReviewListResponse, ReviewModel
from .service import ReviewService

logger = logging.getLogger(__name__)

review_router = APIRouter()


@review_router.post(
    "",
    response_model=ReviewModel,
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    responses={
        400: {"description": "A required field is missing or malformed."},
    }
)
async def create_review(
    review_data: Dict[str, Any] = Body(...),
    repository: ReviewRepository = Depends(get_repository)
):
    service = ReviewService(repository)
    return await service.create_review(review_data)


@review_router.get(
    "",
    response_model=ReviewListResponse,
    summary="List reviews with filtering, sorting and pagination"
)
async def list_reviews(
    sku: Optional[str] = Query(None),
    rating: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    text: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    author_email: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: Optional[str] = Query(None, description="Page number (default: 1)"),
    page_size: Optional[str] = Query(None, alias="pageSize", description="Reviews per page (default: 10)"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="created_at, updated_at, rating or status"),
    sort_dir: Optional[str] = Query(None, alias="sortDir", description="asc or desc (default: desc)"),
    repository: ReviewRepository = Depends(get_repository)
):
    """
    Filters match case-insensitively: **status** exactly, **rating** as a
    number, every other field as a substring. Unusable values are ignored.
    """
    params = {
        "sku": sku,
        "rating": rating,
        "title": title,
        "text": text,
        "author": author,
        "author_email": author_email,
        "status": status,
        "page": page,
        "pageSize": page_size,
        "sortBy": sort_by,
        "sortDir": sort_dir,
    }
    service = ReviewService(repository)
    return await service.list_reviews(params)


@review_router.post(
    "/by-ids",
    response_model=List[Dict[str, Any]],
    summary="Fetch reviews by id; unknown ids are omitted"
)
async def get_reviews_by_ids(
    payload: Dict[str, Any] = Body(...),
    auth: AuthContext = Depends(require_auth),
    repository: ReviewRepository = Depends(get_repository)
):
    logger.info(f"Getting reviews for org: {auth.org_id}")
    service = ReviewService(repository)
    return await service.get_reviews_by_ids(payload)


@review_router.patch(
    "",
    response_model=BatchResultResponse,
    response_model_exclude_none=True,
    summary="Update several reviews, reporting each one separately"
)
async def update_reviews(
    payload: Dict[str, Any] = Body(...),
    repository: ReviewRepository = Depends(get_repository)
):
    service = ReviewService(repository)
    return await service.update_reviews(payload)


@review_router.post(
    "/delete",
    response_model=BatchResultResponse,
    response_model_exclude_none=True,
    summary="Delete several reviews, reporting each one separately"
)
async def delete_reviews(
    payload: Dict[str, Any] = Body(...),
    repository: ReviewRepository = Depends(get_repository)
):
    service = ReviewService(repository)
    return await service.delete_reviews(payload)
