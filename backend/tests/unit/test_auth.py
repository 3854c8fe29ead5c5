"""Unit tests for JWT authentication and role checks."""
from datetime import timedelta

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from league_billing.api.deps import get_current_user, get_optional_user
from league_billing.auth.jwt import JWTAuth, jwt_auth
from league_billing.auth.rbac import ROLE_HIERARCHY, Role, check_role_hierarchy, is_platform_admin, require_roles


def test_access_token_round_trip():
    """Test that issued tokens verify and carry the user claims."""
    auth = JWTAuth()
    token = auth.create_access_token("user_1", "host@example.com", Role.HOST.value)

    payload = auth.verify_access_token(token)

    assert payload["sub"] == "user_1"
    assert payload["role"] == "Host"


def test_token_from_other_key_rejected():
    """Test that a token signed by another key is invalid."""
    token = JWTAuth().create_access_token("user_1", "host@example.com", Role.HOST.value)

    with pytest.raises(jwt.InvalidTokenError):
        JWTAuth().verify_access_token(token)


@pytest.mark.parametrize(
    "role,required,expected",
    [
        ("Platform Admin", [Role.HOST], True),
        ("Host", [Role.HOST], True),
        ("Member", [Role.HOST], False),
        ("Host", [Role.PLATFORM_ADMIN], False),
        ("Owner", [Role.MEMBER], False),
    ],
)
def test_role_hierarchy(role, required, expected):
    """Test that higher roles inherit lower role permissions."""
    assert check_role_hierarchy(role, required) is expected


def test_is_platform_admin():
    """Test platform admin detection."""
    assert is_platform_admin({"sub": "a", "role": "Platform Admin"}) is True
    assert is_platform_admin({"sub": "b", "role": "Host"}) is False
    assert is_platform_admin(None) is False


@pytest.mark.asyncio
async def test_require_roles_denies_lower_role():
    """Test the RBAC decorator."""

    @require_roles(Role.PLATFORM_ADMIN)
    async def endpoint(current_user: dict):
        return "ok"

    assert await endpoint(current_user={"sub": "a", "role": "Platform Admin"}) == "ok"

    with pytest.raises(HTTPException) as exc_info:
        await endpoint(current_user={"sub": "b", "role": "Host"})
    assert exc_info.value.status_code == 403

    with pytest.raises(HTTPException) as exc_info:
        await endpoint(current_user=None)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_dependency():
    """Test bearer token handling in the auth dependency."""
    token = jwt_auth.create_access_token("user_1", "host@example.com", Role.HOST.value)

    user = await get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))
    assert user["sub"] == "user_1"

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(None)
    assert exc_info.value.status_code == 401

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="not-a-token"))
    assert exc_info.value.status_code == 401

    assert await get_optional_user(None) is None
    assert await get_optional_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="bad")) is None


def test_expired_token_rejected():
    """Test that tokens past their lifetime fail with the expiry error."""
    auth = JWTAuth()
    auth.lifetime = timedelta(minutes=-5)
    token = auth.create_access_token("user_1", "host@example.com", Role.HOST.value)

    with pytest.raises(jwt.ExpiredSignatureError):
        auth.verify_access_token(token)


def test_foreign_issuer_rejected():
    """Test that the same key under another issuer does not verify."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    token = JWTAuth(private_key=key, issuer="someone-else").create_access_token(
        "user_1", "host@example.com", Role.HOST.value
    )

    with pytest.raises(jwt.InvalidIssuerError):
        JWTAuth(private_key=key).verify_access_token(token)


def test_role_ranks():
    """Test what each platform role may act as."""
    assert ROLE_HIERARCHY[Role.PLATFORM_ADMIN] == [Role.MEMBER, Role.HOST, Role.PLATFORM_ADMIN]
    assert ROLE_HIERARCHY[Role.MEMBER] == [Role.MEMBER]
