"""Caller identity handling.

Credentials are verified by the external identity service, which issues
signed JWTs. This module only decodes those tokens and implements the
ownership checks that belong to the signing engine.
"""

from __future__ import annotations

from typing import Any, cast

from jose import JWTError, jwt

from hylian.config import settings
from hylian.exceptions import Forbidden, Unauthorized
from hylian.schemas.auth import CallerIdentity


def decode_identity_token(
    token: str, secret: str | None = None, algorithm: str | None = None
) -> CallerIdentity:
    try:
        payload = cast(
            dict[Any, Any],
            jwt.decode(
                token,
                secret or settings.jwt_secret,
                algorithms=[algorithm or settings.jwt_algorithm],
            ),
        )
    except JWTError as exc:
        raise Unauthorized("Invalid token") from exc
    subject = payload.get("sub")
    email = payload.get("email")
    if not subject or not email:
        raise Unauthorized("Invalid token")
    return CallerIdentity(id=str(subject), email=str(email), role=str(payload.get("role") or "user"))


def is_owner(owner_id: str, caller: CallerIdentity) -> bool:
    return caller.is_admin or str(owner_id) == caller.id


def ensure_owner(owner_id: str, caller: CallerIdentity, detail: str = "Access denied") -> None:
    """Raise Forbidden unless the caller owns the resource or is an admin."""
    if not is_owner(owner_id, caller):
        raise Forbidden(detail)
