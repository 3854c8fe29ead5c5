"""Request dependencies: database session, payment gateway, caller identity and cron auth."""
import secrets
from typing import AsyncGenerator, Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.adapters.stripe_adapter import StripeAdapter
from league_billing.auth.jwt import jwt_auth
from league_billing.config import settings
from league_billing.database import AsyncSessionLocal

logger = structlog.get_logger(__name__)

bearer = HTTPBearer(auto_error=False)

_gateway: Optional[StripeAdapter] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request, committed when the handler returns normally."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_payment_gateway() -> StripeAdapter:
    global _gateway
    if _gateway is None:
        _gateway = StripeAdapter()
    return _gateway


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> dict[str, str]:
    """
    Claims of the bearer token's user (``sub``, ``email``, ``role``).

    Raises:
        HTTPException: 401 when the token is missing, expired or invalid
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    try:
        claims = jwt_auth.verify_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.info("access_token_expired")
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as exc:
        logger.warning("access_token_rejected", error=str(exc))
        raise _unauthorized("Invalid authentication token")

    structlog.contextvars.bind_contextvars(user_id=claims["sub"])
    return claims


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[dict[str, str]]:
    """Same as ``get_current_user`` but anonymous callers get None instead of a 401."""
    if credentials is None:
        return None
    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> None:
    if credentials is None or not secrets.compare_digest(credentials.credentials, settings.cron_secret):
        logger.warning("cron_request_unauthorized")
        raise _unauthorized("Unauthorized")
