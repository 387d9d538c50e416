from __future__ import annotations

from typing import Mapping, Optional

from ..errors import Unauthenticated


def get_authorization_header(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """
    Return the ``Authorization`` header value, or ``None`` when absent.
    """
    if headers is None:
        return None
    return headers.get("authorization") or headers.get("Authorization")


def parse_bearer_token(header_value: Optional[str]) -> str:
    """
    Extract the token from a ``Bearer <token>`` header.

    Raw tokens without the scheme are accepted as well.

    Raises:
        Unauthenticated: When the header is missing or the token component is empty.
    """
    if not header_value:
        raise Unauthenticated("No authorization token")

    raw = header_value.strip()
    if raw.lower().startswith("bearer "):
        token = raw.split(" ", 1)[1].strip()
    else:
        token = raw

    if not token:
        raise Unauthenticated("No authorization token")

    return token


def extract_bearer_token(headers: Optional[Mapping[str, str]]) -> str:
    return parse_bearer_token(get_authorization_header(headers))
