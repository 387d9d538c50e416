from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL = 3600
MAX_SIGNED_URL_TTL = 7 * 24 * 3600  # S3 presigned URL ceiling
DEFAULT_IDENTITY_TIMEOUT = 5.0


def _int_env(env: Mapping[str, str], name: str, default: int, maximum: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid {name} value: {raw!r}. Error: {e}. Using default: {default}")
        return default
    if value <= 0:
        logger.warning(f"Invalid {name} value: {raw}. Must be positive. Using default: {default}")
        return default
    if value > maximum:
        logger.warning(
            f"{name} value {value} exceeds maximum ({maximum}). Using default: {default}"
        )
        return default
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except (ValueError, TypeError):
        logger.warning(f"Invalid {name} value: {raw!r}. Using default: {default}")
        return default
    return value if value > 0 else default


def _choice_env(env: Mapping[str, str], name: str, default: str, choices: Tuple[str, ...]) -> str:
    value = (env.get(name) or default).strip().lower()
    if value not in choices:
        logger.warning(f"Unknown {name} value: {value!r}. Using default: {default}")
        return default
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once at startup."""

    environment: str = "development"
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None

    record_store_backend: str = "memory"
    records_table: str = "gradeflow-records"

    blob_store_backend: str = "memory"
    materials_bucket: str = "gradeflow-materials"
    submissions_bucket: str = "gradeflow-submissions"
    signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL

    identity_backend: str = "jwt"
    jwt_secret: Optional[str] = None
    jwt_secret_name: str = "gradeflow-jwt-secret"
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = "authenticated"
    identity_url: Optional[str] = None
    identity_api_key: Optional[str] = None
    identity_timeout_seconds: float = DEFAULT_IDENTITY_TIMEOUT

    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("*",))
    log_level: str = "INFO"
    cloudwatch_log_group: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        origins = tuple(
            o.strip() for o in (env.get("CORS_ORIGINS") or "*").split(",") if o.strip()
        )
        return cls(
            environment=(env.get("ENVIRONMENT") or "development").lower(),
            aws_region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or "us-east-1",
            aws_endpoint_url=env.get("AWS_ENDPOINT_URL") or None,
            record_store_backend=_choice_env(
                env, "RECORD_STORE_BACKEND", "memory", ("memory", "dynamodb")
            ),
            records_table=env.get("DDB_TABLE_RECORDS") or "gradeflow-records",
            blob_store_backend=_choice_env(env, "BLOB_STORE_BACKEND", "memory", ("memory", "s3")),
            materials_bucket=env.get("MATERIALS_BUCKET") or "gradeflow-materials",
            submissions_bucket=env.get("SUBMISSIONS_BUCKET") or "gradeflow-submissions",
            signed_url_ttl_seconds=_int_env(
                env, "SIGNED_URL_TTL_SECONDS", DEFAULT_SIGNED_URL_TTL, MAX_SIGNED_URL_TTL
            ),
            identity_backend=_choice_env(env, "IDENTITY_BACKEND", "jwt", ("jwt", "http")),
            jwt_secret=env.get("JWT_SECRET") or None,
            jwt_secret_name=env.get("JWT_SECRET_NAME") or "gradeflow-jwt-secret",
            jwt_algorithm=env.get("JWT_ALGORITHM") or "HS256",
            jwt_audience=env.get("JWT_AUDIENCE", "authenticated") or None,
            identity_url=(env.get("IDENTITY_URL") or "").rstrip("/") or None,
            identity_api_key=env.get("IDENTITY_API_KEY") or None,
            identity_timeout_seconds=_float_env(
                env, "IDENTITY_TIMEOUT_SECONDS", DEFAULT_IDENTITY_TIMEOUT
            ),
            cors_origins=origins or ("*",),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            cloudwatch_log_group=env.get("CLOUDWATCH_LOG_GROUP") or None,
        )
