"""Verification of identity-provider bearer tokens."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from discharger.config.settings import get_settings
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Identity:
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


class AuthService:
    """Verifies JWTs issued by the external identity provider.

    Tokens are checked against the provider's JWKS endpoint when one is
    configured, otherwise against the shared secret.
    """

    def __init__(self) -> None:
        self.settings = get_settings()
        self._jwks_client = (
            jwt.PyJWKClient(self.settings.auth_jwks_url) if self.settings.auth_jwks_url else None
        )

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is not None:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        if not self.settings.auth_jwt_secret:
            raise jwt.InvalidTokenError("No token verification key configured")
        return self.settings.auth_jwt_secret

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        options = {"require": ["sub", "exp"]} if self._jwks_client is not None else {"require": ["sub"]}
        try:
            return jwt.decode(
                token,
                self._signing_key(token),
                algorithms=self.settings.auth_jwt_algorithms,
                audience=self.settings.auth_jwt_audience,
                issuer=self.settings.auth_jwt_issuer,
                options={**options, "verify_aud": self.settings.auth_jwt_audience is not None},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("auth.token_expired")
            return None
        except jwt.PyJWTError as e:
            logger.warning("auth.token_invalid", error=str(e))
            return None

    def verify(self, token: str) -> Optional[Identity]:
        payload = self.decode_token(token)
        if not payload:
            return None
        name = payload.get("name")
        if not name and (payload.get("given_name") or payload.get("family_name")):
            name = " ".join(p for p in (payload.get("given_name"), payload.get("family_name")) if p)
        return Identity(user_id=str(payload["sub"]), email=payload.get("email"), name=name)


_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
