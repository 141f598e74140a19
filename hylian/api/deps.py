from fastapi import Header, Request

from hylian.db import get_db
from hylian.exceptions import Unauthorized
from hylian.schemas.auth import CallerIdentity
from hylian.services.identity import decode_identity_token


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None


def get_optional_caller(
    request: Request,
    authorization: str | None = Header(default=None),
) -> CallerIdentity | None:
    token = _extract_bearer_token(authorization)
    if not token:
        return None
    caller = decode_identity_token(token)
    request.state.actor_id = caller.id
    return caller


def get_current_caller(
    request: Request,
    authorization: str | None = Header(default=None),
) -> CallerIdentity:
    caller = get_optional_caller(request, authorization)
    if caller is None:
        raise Unauthorized("Invalid authentication credentials")
    return caller


__all__ = ["get_db", "get_current_caller", "get_optional_caller"]
