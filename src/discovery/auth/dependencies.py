"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from discovery.auth.jwt import verify_token

_bearer = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    user_id: str
    is_admin: bool = False


async def get_principal(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> Principal:
    """Verify the bearer token. Raises 401 on failure."""
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user_id = str(payload.get("sub") or "")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return Principal(user_id=user_id, is_admin=bool(payload.get("is_admin", False)))


async def get_current_user_id(principal: Principal = Depends(get_principal)) -> str:
    return principal.user_id


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    """Same as get_principal but additionally requires the ``is_admin`` claim."""
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return principal
