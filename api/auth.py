"""
Bearer token authentication for protected API routes.

Protected handlers depend on ``authenticate_request``; public routes
(book listing, book detail, login, registration, health) do not.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_token_service
from bookstore.auth import AuthenticatedIdentity
from bookstore.exceptions import InvalidTokenError, Unauthenticated
from bookstore.security import TokenService

logger = structlog.get_logger(__name__)

MISSING_TOKEN_MESSAGE = "Authorization token is missing or invalid"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"

# Security scheme; missing headers are reported through Unauthenticated
security = HTTPBearer(auto_error=False)


async def authenticate_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_service: TokenService = Depends(get_token_service),
) -> AuthenticatedIdentity:
    """
    Resolve the caller from an ``Authorization: Bearer <token>`` header.

    The token subject is trusted as-is; the user it names may have been
    deleted since the token was issued.

    Args:
        request: Incoming request; the identity is stored on ``request.state``
        credentials: Parsed bearer credentials, None if absent or malformed
        token_service: Token verifier

    Returns:
        The authenticated identity

    Raises:
        Unauthenticated: header missing or malformed, or token rejected
    """
    # HTTPBearer matches the scheme case-insensitively; only "Bearer" is accepted
    if credentials is None or credentials.scheme != "Bearer":
        logger.info("Missing bearer token", path=request.url.path)
        raise Unauthenticated(MISSING_TOKEN_MESSAGE)

    try:
        claims = token_service.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning("Invalid bearer token", path=request.url.path, reason=e.message)
        raise Unauthenticated(INVALID_TOKEN_MESSAGE) from e

    identity = AuthenticatedIdentity(id=claims.subject)
    request.state.identity = identity
    return identity
