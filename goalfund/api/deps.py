# goalfund/api/deps.py
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import uuid

from goalfund.clients.intent_parser import IntentParserClient, get_intent_parser
from goalfund.core.config import settings

# Users live in the external identity service; we only trust the signed subject
optional_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> uuid.UUID:
    """
    Resolve the calling user's id from a bearer JWT:
    - Authorization header
    - access_token cookie
    """
    token = credentials.credentials if credentials and credentials.credentials else None

    if not token:
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[7:]

    if not token:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise _unauthorized("Invalid token: missing user ID")

    try:
        return uuid.UUID(str(user_id_str))
    except ValueError:
        raise _unauthorized("Invalid user ID format in token")


async def get_parser() -> IntentParserClient:
    return get_intent_parser()
