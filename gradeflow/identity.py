"""
Identity boundary.

Bearer tokens are issued and owned by an external identity provider. A resolver
turns a token into an ``Identity`` (verified user id, email and the provider's
user metadata); ``resolve_actor`` then attaches the role from the stored
profile.

Role fallback policy: when no ``user:{id}`` profile exists the actor is
authorized as ``student``, whatever the provider metadata claims. The profile
endpoint still reports the provider's ``user_metadata.role`` (or ``student``) so
clients can display it. ``Actor.profile_found`` records which path was taken.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import jwt
import requests

from .config import Settings
from .errors import Unauthenticated, UpstreamFailure
from .models import Role, User
from .utils.jwt_secret import load_jwt_secret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Actor:
    user_id: str
    email: Optional[str]
    name: str
    role: Role
    profile_found: bool


class IdentityResolver(Protocol):
    def verify(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise ``Unauthenticated``."""
        ...


class JWTIdentityResolver:
    """Validates provider-issued JWTs locally with a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = None) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    def verify(self, token: str) -> Identity:
        options = {"require": ["sub", "exp"]}
        if not self._audience:
            options["verify_aud"] = False
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            raise Unauthenticated("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected bearer token: {e}")
            raise Unauthenticated("Unauthorized") from e

        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise Unauthenticated("Unauthorized")
        metadata = claims.get("user_metadata")
        return Identity(
            user_id=user_id,
            email=claims.get("email"),
            metadata=metadata if isinstance(metadata, dict) else {},
        )


class HTTPIdentityResolver:
    """Asks the identity provider's user endpoint to validate each token."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/auth/v1/user"
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    def verify(self, token: str) -> Identity:
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key
        try:
            response = self._session.get(self._url, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise UpstreamFailure("Identity provider unavailable") from e

        if response.status_code in (401, 403):
            raise Unauthenticated("Unauthorized")
        if response.status_code != 200:
            logger.error(f"Identity provider returned HTTP {response.status_code}")
            raise UpstreamFailure("Identity provider unavailable")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamFailure("Identity provider returned malformed response") from e
        user_id = body.get("id") if isinstance(body, dict) else None
        if not user_id:
            raise Unauthenticated("Unauthorized")
        metadata = body.get("user_metadata")
        return Identity(
            user_id=user_id,
            email=body.get("email"),
            metadata=metadata if isinstance(metadata, dict) else {},
        )


def fallback_role(identity: Identity) -> Role:
    raw = identity.metadata.get("role")
    try:
        return Role(str(raw).strip().lower()) if raw else Role.STUDENT
    except ValueError:
        return Role.STUDENT


def resolve_actor(identity: Identity, profile: Optional[User]) -> Actor:
    if profile is not None:
        return Actor(
            user_id=identity.user_id,
            email=profile.email or identity.email,
            name=profile.name,
            role=profile.role,
            profile_found=True,
        )
    logger.info(f"No profile for user {identity.user_id}; authorizing as student")
    return Actor(
        user_id=identity.user_id,
        email=identity.email,
        name=str(identity.metadata.get("name") or ""),
        role=Role.STUDENT,
        profile_found=False,
    )


def build_identity_resolver(settings: Settings) -> IdentityResolver:
    if settings.identity_backend == "http":
        if not settings.identity_url:
            raise RuntimeError("IDENTITY_URL is required when IDENTITY_BACKEND=http")
        return HTTPIdentityResolver(
            settings.identity_url,
            api_key=settings.identity_api_key,
            timeout=settings.identity_timeout_seconds,
        )
    return JWTIdentityResolver(
        load_jwt_secret(settings),
        algorithm=settings.jwt_algorithm,
        audience=settings.jwt_audience,
    )
