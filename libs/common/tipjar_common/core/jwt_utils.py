"""JWT utilities for validating access tokens issued by the hosted auth service."""

from typing import Any
from uuid import UUID

import requests
from jose import JWTError
from jose import jwt as jose_jwt
from pydantic import BaseModel

from tipjar_common.core.app_error import Errors
from tipjar_common.core.config_service import AuthSection, ConfigService
from tipjar_common.ids import UserId
from tipjar_common.utils.utils import get_logger

logger = get_logger(__name__)

_ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]


class TokenData(BaseModel):
    user_id: UserId
    email: str | None = None
    username: str | None = None
    role: str | None = None


class JWTValidator:
    """Validates hosted-auth access tokens.

    Tokens signed with the shared project secret (HS256) are checked locally. When no secret is
    configured the validator falls back to the project's JWKS endpoint.
    """

    def __init__(self, auth: AuthSection | None = None) -> None:
        self.auth = auth or ConfigService().auth
        self._jwks_cache: dict[str, Any] | None = None

    def _get_jwks(self) -> dict[str, Any]:
        if self._jwks_cache is None:
            if not self.auth.jwks_url:
                raise Errors.Auth.INVALID_TOKEN.create(message="No JWKS endpoint configured")
            try:
                response = requests.get(self.auth.jwks_url, timeout=10)
                response.raise_for_status()
                self._jwks_cache = response.json()
                logger.info("Successfully fetched JWKS", url=self.auth.jwks_url)
            except requests.RequestException as e:
                logger.exception("Failed to fetch JWKS")
                raise Errors.Auth.INVALID_TOKEN.create(message="Failed to fetch JWKS for token validation", cause=e) from e

        assert self._jwks_cache is not None
        return self._jwks_cache

    def _get_signing_key(self, token_header: dict[str, Any]) -> dict[str, Any]:
        kid = token_header.get("kid")
        if not kid:
            raise Errors.Auth.INVALID_TOKEN.create(message="Token header missing 'kid' field")

        for key in self._get_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key

        raise Errors.Auth.INVALID_TOKEN.create(message=f"Unable to find signing key with kid: {kid}")

    def _decode(self, token: str) -> dict[str, Any]:
        if self.auth.jwt_secret:
            return jose_jwt.decode(
                token,
                self.auth.jwt_secret,
                algorithms=[self.auth.algorithm],
                audience=self.auth.jwt_audience,
                options={"verify_exp": True},
            )

        unverified_header = jose_jwt.get_unverified_header(token)
        return jose_jwt.decode(
            token,
            self._get_signing_key(unverified_header),
            algorithms=_ASYMMETRIC_ALGORITHMS,
            audience=self.auth.jwt_audience,
            options={"verify_exp": True},
        )

    def validate_token(self, token: str) -> TokenData:
        """Validate a JWT and return the caller's identity."""
        try:
            payload = self._decode(token)
        except JWTError as e:
            logger.warning("JWT validation error", error=str(e))
            raise Errors.Auth.INVALID_TOKEN.create(cause=e) from e

        sub = payload.get("sub")
        try:
            user_id = UserId(UUID(str(sub)))
        except ValueError as e:
            raise Errors.Auth.INVALID_TOKEN.create(message="Token subject is not a user id", cause=e) from e

        metadata = payload.get("user_metadata") or {}
        return TokenData(
            user_id=user_id,
            email=payload.get("email"),
            username=metadata.get("username") if isinstance(metadata, dict) else None,
            role=payload.get("role"),
        )


def create_access_token(claims: dict[str, Any], auth: AuthSection | None = None) -> str:
    """Sign a token with the shared secret, as the hosted auth service would. Used by tests and local tooling."""
    auth = auth or ConfigService().auth
    if not auth.jwt_secret:
        raise Errors.Generic.INTERNAL_ERROR.create(message="No JWT secret configured")
    to_encode = {"aud": auth.jwt_audience, **claims}
    return jose_jwt.encode(to_encode, auth.jwt_secret, algorithm=auth.algorithm)
