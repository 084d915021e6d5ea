from fastapi import FastAPI, Depends
import logging

from review_store.config import Config
from review_store.auth.dependencies import require_auth

from review_store.admin_dashboard.reviews.routes import review_router
from review_store.admin_dashboard.diagnostics.routes import diagnostics_router
from review_store.admin_dashboard.registration.routes import registration_router

from .errors import register_all_errors
from .admin_dashboard.middleware import register_middleware

logging.basicConfig(level=Config.LOG_LEVEL.upper())

version = "v1"

app = FastAPI(
    title = "Review Store",
    description = "Admin REST API for moderating product reviews",
    version = version,
)


register_all_errors(app)
register_middleware(app)


app.include_router(review_router, prefix=f"/admin/reviews", tags=['admin reviews'], dependencies=[Depends(require_auth)])
app.include_router(diagnostics_router, prefix=f"/admin/diagnostics", tags=['admin diagnostics'], dependencies=[Depends(require_auth)])

app.include_router(registration_router, prefix=f"/registration", tags=['registration'])
