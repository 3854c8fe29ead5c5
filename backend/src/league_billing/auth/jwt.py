"""RS256 access tokens for hosts, members and platform admins.

Tokens carry the user id (``sub``), email and platform role. Without a
configured ``JWT_PRIVATE_KEY_PEM`` the signing key is generated per process,
so tokens only verify on the instance that issued them.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from league_billing.config import settings

logger = structlog.get_logger(__name__)

ALGORITHM = "RS256"
TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["sub", "role", "exp", "iat", "iss"]


def load_signing_key(pem: Optional[str] = None) -> rsa.RSAPrivateKey:
    if pem:
        return serialization.load_pem_private_key(pem.encode(), password=None)
    logger.warning("jwt_ephemeral_key_generated")
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class JWTAuth:
    def __init__(self, private_key: Optional[rsa.RSAPrivateKey] = None, issuer: Optional[str] = None):
        self._private_key = private_key or load_signing_key(settings.jwt_private_key_pem)
        self.issuer = issuer or settings.jwt_issuer
        self.lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    def create_access_token(
        self,
        user_id: str,
        email: str,
        role: str,
        additional_claims: Optional[Dict] = None,
    ) -> str:
        """Sign a token for ``user_id`` holding ``role`` (Platform Admin, Host or Member)."""
        issued_at = datetime.now(timezone.utc)
        claims = {
            **(additional_claims or {}),
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": TOKEN_TYPE,
            "iss": self.issuer,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(claims, self._private_key, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> Dict:
        """
        Decode ``token`` after checking signature, expiry and issuer.

        Raises:
            jwt.ExpiredSignatureError: the token is past ``exp``
            jwt.InvalidTokenError: anything else wrong with it
        """
        return jwt.decode(
            token,
            self._private_key.public_key(),
            algorithms=[ALGORITHM],
            issuer=self.issuer,
            options={"require": REQUIRED_CLAIMS},
        )

    def verify_access_token(self, token: str) -> Dict:
        payload = self.verify_token(token)
        if payload.get("type") != TOKEN_TYPE:
            raise jwt.InvalidTokenError("Not an access token")
        return payload

    def get_public_key_pem(self) -> bytes:
        """Public half of the signing key, for services that verify tokens themselves."""
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )


jwt_auth = JWTAuth()
