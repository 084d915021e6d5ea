from typing import Callable
from fastapi import FastAPI, status
from fastapi.requests import Request
from fastapi.responses import JSONResponse


class ReviewStoreException(Exception):
    """This is the base class for all review store errors"""
    pass


class ValidationError(ReviewStoreException):
    """A review document or batch payload broke a schema rule."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationRequired(ReviewStoreException):
    """The gateway auth headers are missing from the request."""
    def __init__(self):
        super().__init__("Authentication required. Please provide valid credentials.")


class ReviewNotFound(ReviewStoreException):
    """Review not found."""
    def __init__(self):
        super().__init__("Review not found.")


class StoreError(ReviewStoreException):
    """The document store could not be reached or set up."""
    pass


class StoreTimeout(ReviewStoreException):
    """The document store did not answer before the deadline."""
    pass


def create_exception_handler(status_code: int, error_code: str) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exc: ReviewStoreException):
        return JSONResponse(
            content={
                "message": str(exc),
                "error_code": error_code
            },
            status_code=status_code
        )

    return exception_handler


def register_all_errors(app: FastAPI):
    # Validation Error
    app.add_exception_handler(
        ValidationError,
        create_exception_handler(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error"
        )
    )

    # Authentication Required
    app.add_exception_handler(
        AuthenticationRequired,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="authentication_required"
        )
    )

    # Review Not Found
    app.add_exception_handler(
        ReviewNotFound,
        create_exception_handler(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="review_not_found"
        )
    )

    # Store Error
    app.add_exception_handler(
        StoreError,
        create_exception_handler(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="store_unavailable"
        )
    )

    # Store Timeout
    app.add_exception_handler(
        StoreTimeout,
        create_exception_handler(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            error_code="store_timeout"
        )
    )

    @app.exception_handler(500)
    async def internal_server_error_handler(request, exc):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Oops, something went wrong. Please try again later",
                "error_code": "server_error"
            }
        )
