"""
Snapstream Backend — FastAPI Auth Dependencies
================================================

What:  `get_current_user` (token required) and `get_optional_user` (token
       optional) dependencies.
How:   HTTPBearer with auto_error=False so a missing header reaches our own
       UnauthorizedError ("No token provided") and the central error handler,
       instead of FastAPI's default 403.

Usage:
    @router.get("/me")
    async def me(current_user: CurrentUser = Depends(get_current_user)):
        ...
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from snapstream.exceptions import UnauthorizedError
from snapstream.security import CurrentUser, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided")
    user = decode_access_token(credentials.credentials)
    # Picked up by RequestLoggingMiddleware
    request.state.username = user.username
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CurrentUser]:
    """Like get_current_user, but an absent token means an anonymous viewer."""
    if credentials is None or not credentials.credentials:
        return None
    user = decode_access_token(credentials.credentials)
    request.state.username = user.username
    return user
