import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from review_store.config import Config
from review_store.db.repository import ReviewRepository
from review_store.errors import ReviewNotFound, ReviewStoreException, StoreTimeout, ValidationError
from .query import compile_review_query
from .review import create_review, parse_review, update_review
from .schemas import BatchItemResult, BatchResultResponse, ReviewListResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    id: Any
    review: Optional[dict] = None


@dataclass(frozen=True)
class Err:
    id: Any
    reason: str


Outcome = Union[Ok, Err]


def to_result(outcome: Outcome) -> BatchItemResult:
    if isinstance(outcome, Ok):
        return BatchItemResult(id=outcome.id, success=True, review=outcome.review)
    return BatchItemResult(id=outcome.id, success=False, error=outcome.reason)


def ids_from_payload(payload: Mapping[str, Any]) -> list:
    """Accept ``{"ids": [...]}`` or a single ``{"id": ...}``."""
    ids = payload.get("ids") or ([payload["id"]] if payload.get("id") else [])
    if not isinstance(ids, list) or not ids:
        raise ValidationError("Missing or invalid ids array.")
    return ids


def check_id(review_id: Any) -> Optional[str]:
    """Error text for an id that cannot be used as a storage key, else None."""
    if not review_id:
        return "Missing id."
    if not isinstance(review_id, str):
        return "Invalid id."
    return None


async def connect(repository: ReviewRepository, timeout: Optional[float] = None) -> ReviewRepository:
    """Open the repository's store connection under a deadline."""
    timeout = Config.STORE_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(repository.init(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Store connection timed out after {timeout}s")
        raise StoreTimeout(f"Store connection timed out after {timeout}s.") from e


class ReviewService:
    def __init__(self, repository: ReviewRepository):
        self.repository = repository

    async def create_review(self, payload: Mapping[str, Any]) -> dict:
        new_review = create_review(payload)

        await connect(self.repository)
        logger.debug(f"Review before put: {new_review}")
        await self.repository.put(new_review["id"], new_review)
        logger.debug(f"Successfully created review with id {new_review['id']}")
        return new_review

    async def get_reviews_by_ids(self, payload: Mapping[str, Any]) -> List[dict]:
        ids = ids_from_payload(payload)
        await connect(self.repository)

        outcomes = []
        for review_id in ids:
            outcomes.append(await self._fetch_one(review_id))
        return [outcome.review for outcome in outcomes if isinstance(outcome, Ok)]

    async def _fetch_one(self, review_id: Any) -> Outcome:
        error = check_id(review_id)
        if error:
            return Err(review_id, error)
        try:
            review = await self.repository.get(review_id)
        except Exception as e:
            logger.error(f"Failed to fetch review with id {review_id}: {str(e)}")
            return Err(review_id, str(e))
        if review is None:
            return Err(review_id, str(ReviewNotFound()))
        return Ok(review_id, review)

    async def list_reviews(self, params: Mapping[str, Any]) -> ReviewListResponse:
        query = compile_review_query(params)
        await connect(self.repository)

        logger.debug(f"Searching reviews with query: {query.filter}")
        cursor = await self.repository.find(query.filter)
        cursor = cursor.sort(query.sort_field, query.sort_direction)
        if query.skip > 0:
            cursor = cursor.skip(query.skip)
        cursor = cursor.limit(query.limit)

        reviews = []
        async for document in cursor:
            review = self.repository.normalize(document)
            if review:
                reviews.append(review)

        total = await self.repository.count(query.filter)
        logger.info(f"Total reviews fetched: {len(reviews)} of {total}")

        return ReviewListResponse(
            items=reviews,
            total=total,
            page=query.page,
            page_size=query.page_size,
            sort_by=query.sort_by_label,
            sort_dir=query.sort_dir_label
        )

    async def update_reviews(self, payload: Mapping[str, Any]) -> BatchResultResponse:
        updates = payload.get("reviews")
        if not isinstance(updates, list) or not updates:
            raise ValidationError("Missing or invalid reviews array.")
        await connect(self.repository)

        outcomes = []
        for update in updates:
            outcomes.append(await self._update_one(update))
        return BatchResultResponse(results=[to_result(outcome) for outcome in outcomes])

    async def _update_one(self, update: Any) -> Outcome:
        review_id = update.get("id") if isinstance(update, dict) else None
        error = check_id(review_id)
        if error:
            return Err(review_id, error)

        try:
            stored = await self.repository.get(review_id)
            if stored is None:
                raise ReviewNotFound()
            existing = parse_review(stored)
            if existing is None:
                return Err(review_id, "Failed to parse or validate existing review.")
            updated = update_review(existing, update)
            await self.repository.put(review_id, updated)
        except ReviewStoreException as e:
            return Err(review_id, str(e))
        except Exception as e:
            logger.error(f"Failed to update review with id {review_id}: {str(e)}")
            return Err(review_id, str(e))
        return Ok(review_id, updated)

    async def delete_reviews(self, payload: Mapping[str, Any]) -> BatchResultResponse:
        ids = ids_from_payload(payload)
        await connect(self.repository)

        outcomes = []
        for review_id in ids:
            outcomes.append(await self._delete_one(review_id))
        return BatchResultResponse(results=[to_result(outcome) for outcome in outcomes])

    async def _delete_one(self, review_id: Any) -> Outcome:
        error = check_id(review_id)
        if error:
            return Err(review_id, error)
        # Deleting an id that is not stored still counts as success
        try:
            await self.repository.delete(review_id)
        except Exception as e:
            logger.error(f"Failed to delete review with id {review_id}: {str(e)}")
            return Err(review_id, str(e))
        return Ok(review_id)
