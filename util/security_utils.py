from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

import env
from models.users import Session

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a recognised hash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_session_token(session: Session, expires_in: Optional[timedelta] = None) -> str:
    """
    Sign a session token carrying the user's id, name, email and role.

    Args:
        session: Identity claims to embed
        expires_in: Token lifetime, defaults to SESSION_EXPIRE_DAYS

    Returns:
        str: Encoded HS256 JWT
    """
    if expires_in is None:
        expires_in = timedelta(days=env.SESSION_EXPIRE_DAYS)
    expire = datetime.now(timezone.utc) + expires_in
    to_encode = {
        "sub": session.id,
        "name": session.name,
        "email": session.email,
        "role": session.role,
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, env.SESSION_SECRET, algorithm=env.SESSION_ALGORITHM)


def decode_session_token(token: Optional[str]) -> Optional[Session]:
    """Returns the Session embedded in *token*, or None if it is missing, forged or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, env.SESSION_SECRET, algorithms=[env.SESSION_ALGORITHM])
        return Session(
            id=payload.get("sub"),
            name=payload.get("name"),
            email=payload.get("email"),
            role=payload.get("role", "user"),
        )
    except (JWTError, ValidationError) as e:
        logger.info(f"Rejected session token: {e}")
        return None
