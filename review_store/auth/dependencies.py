# Authentication Dependencies

from dataclasses import dataclass
from typing import Optional
import logging

from fastapi import Request

from review_store.errors import AuthenticationRequired

logger = logging.getLogger(__name__)

ORG_HEADER = "x-gw-ims-org-id"
USER_HEADER = "x-gw-ims-user-id"


@dataclass(frozen=True)
class AuthContext:
    org_id: str
    user_id: Optional[str]
    authorization: str


def resolve_auth_context(headers) -> AuthContext:
    """Build the caller's auth context from gateway headers.

    The gateway in front of the service has already validated the bearer
    token; this only checks that the headers it injects are present.

    Args:
        headers: Mapping of lower-cased request header names to values

    Raises:
        AuthenticationRequired: If the authorization or organization header is missing
    """
    authorization = headers.get("authorization")
    org_id = headers.get(ORG_HEADER)
    if not authorization or not org_id:
        logger.info("Authentication failed: missing headers")
        raise AuthenticationRequired()

    context = AuthContext(
        org_id=org_id,
        user_id=headers.get(USER_HEADER),
        authorization=authorization
    )
    logger.info(f"Authenticated request from org: {context.org_id}, user: {context.user_id}")
    return context


async def require_auth(request: Request) -> AuthContext:
    return resolve_auth_context(request.headers)
