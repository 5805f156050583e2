"""
Session resolution and role guards.

Every request handler receives the caller's Session (or None) explicitly through
FastAPI dependencies. Role checks go through a single ``authorize`` function;
routers attach ``require_role`` / ``require_page_role`` as router-level
dependencies so individual handlers never branch on the role themselves.
"""

from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer

import env
from models.users import Session
from util.security_utils import decode_session_token

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

AUTHORIZED = "authorized"
UNAUTHENTICATED = "unauthenticated"
FORBIDDEN = "forbidden"


class LoginRequired(Exception):
    """Raised by page guards; turned into a redirect to the login page."""

    def __init__(self, next_url: str = "/"):
        super().__init__(next_url)
        self.next_url = next_url


def get_session(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[Session]:
    """Resolve the caller's session from the bearer header or the session cookie."""
    if not token:
        token = request.cookies.get(env.SESSION_COOKIE_NAME)
    return decode_session_token(token)


def authorize(session: Optional[Session], roles=()) -> str:
    """
    Decide whether *session* may use a resource restricted to *roles*.

    An empty *roles* means any authenticated session is enough.
    """
    if session is None:
        return UNAUTHENTICATED
    if roles and session.role not in roles:
        return FORBIDDEN
    return AUTHORIZED


def require_role(*roles):
    """API guard: 401 without a valid session, 403 for a role mismatch."""
    def dependency(session: Optional[Session] = Depends(get_session)) -> Session:
        decision = authorize(session, roles)
        if decision == UNAUTHENTICATED:
            raise HTTPException(status_code=401, detail="Unauthorized")
        if decision == FORBIDDEN:
            logger.warning(f"User {session.email} with role '{session.role}' denied access (requires {roles})")
            raise HTTPException(status_code=403, detail="Forbidden")
        return session
    return dependency


def require_page_role(*roles):
    """Page guard: anonymous visitors and role mismatches are sent to the login page."""
    def dependency(request: Request, session: Optional[Session] = Depends(get_session)) -> Session:
        if authorize(session, roles) != AUTHORIZED:
            raise LoginRequired(request.url.path)
        return session
    return dependency


def set_session_cookie(response, token: str):
    response.set_cookie(
        env.SESSION_COOKIE_NAME,
        token,
        max_age=env.SESSION_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
    )
