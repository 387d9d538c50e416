"""
Retrieve the identity provider's JWT signing secret.

In production the secret comes only from AWS Secrets Manager (``JWT_SECRET_NAME``,
a JSON document with a ``jwt_secret`` field). In development the ``JWT_SECRET``
environment variable is used first and Secrets Manager is the fallback.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..aws_clients import secretsmanager_client
from ..config import Settings

logger = logging.getLogger(__name__)


def _from_secrets_manager(settings: Settings, client) -> str:
    response = client.get_secret_value(SecretId=settings.jwt_secret_name)
    secret_string = response.get("SecretString")
    if not secret_string:
        raise ValueError("SecretString is empty")
    secret_data = json.loads(secret_string)
    jwt_secret = secret_data.get("jwt_secret") if isinstance(secret_data, dict) else None
    if not jwt_secret:
        raise ValueError("jwt_secret field not found in secret")
    return jwt_secret


def load_jwt_secret(settings: Settings, client=None) -> str:
    """
    Return the JWT secret for ``settings``.

    Raises:
        RuntimeError: if no secret can be obtained. In production any Secrets
            Manager failure is fatal; there is no environment fallback.
    """
    if not settings.is_production and settings.jwt_secret:
        logger.info("Using JWT_SECRET from environment variable (development mode)")
        return settings.jwt_secret

    error: Optional[Exception] = None
    try:
        secret = _from_secrets_manager(settings, client or secretsmanager_client(settings))
        logger.info(
            f"Successfully retrieved JWT secret from Secrets Manager: {settings.jwt_secret_name}"
        )
        return secret
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code == "ResourceNotFoundException":
            logger.error(f"JWT secret '{settings.jwt_secret_name}' not found in Secrets Manager")
        elif error_code == "AccessDeniedException":
            logger.error(
                f"Access denied to Secrets Manager secret '{settings.jwt_secret_name}'. "
                "Check IAM permissions."
            )
        else:
            logger.error(f"Error retrieving JWT secret from Secrets Manager: {e}")
        error = e
    except (BotoCoreError, json.JSONDecodeError, ValueError) as e:
        logger.error(f"Error loading JWT secret from Secrets Manager: {e}")
        error = e

    if settings.is_production:
        raise RuntimeError(
            "JWT secret unavailable from Secrets Manager; required in production."
        ) from error
    raise RuntimeError(
        "No JWT secret configured. Set JWT_SECRET or configure Secrets Manager."
    ) from error
