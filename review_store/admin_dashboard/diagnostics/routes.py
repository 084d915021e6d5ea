from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from typing import Optional

from review_store.db.main import connection_registry, driver
from review_store.db.repository import ReviewRepository
from .service import run_storage_diagnostic

diagnostics_router = APIRouter()


def get_diagnostic_repository(
    region: Optional[str] = Query(None, description="Store region to probe")
) -> ReviewRepository:
    return ReviewRepository(
        driver,
        registry=connection_registry,
        region=region,
        keep_alive=False
    )


@diagnostics_router.get("/storage")
async def check_storage(
    repository: ReviewRepository = Depends(get_diagnostic_repository)
):
    ok, body = await run_storage_diagnostic(repository)
    if not ok:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body
        )
    return body
