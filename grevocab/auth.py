from datetime import datetime, timedelta, timezone
import time
import uuid
from typing import Optional
import structlog

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session

from grevocab import config
from grevocab.db import get_session
from grevocab.models import User
from grevocab.services.cache import cache

logger = structlog.get_logger()

SECRET_KEY = config.JWT_SECRET
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = config.REFRESH_TOKEN_EXPIRE_DAYS
MIN_PASSWORD_LENGTH = 6

REVOKED_PREFIX = "revoked_token:"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(Exception):
    """Raised when sign-up or sign-in cannot proceed"""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def validate_credentials(email: str, password: str) -> None:
    if not email or "@" not in email:
        raise AuthError("A valid email address is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _encode(subject: str, token_type: str, expire: datetime) -> str:
    to_encode = {"sub": subject, "exp": expire, "type": token_type, "jti": uuid.uuid4().hex}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    encoded_jwt = _encode(subject, "access", expire)

    logger.info("access_token_created", user_id=subject, expires_at=expire.isoformat())
    return encoded_jwt


def create_refresh_token(subject: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    encoded_jwt = _encode(subject, "refresh", expire)

    logger.info("refresh_token_created", user_id=subject, expires_at=expire.isoformat())
    return encoded_jwt


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    """Verify JWT token and return full payload"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning("token_verification_failed", error=str(e))
        return None

    if payload.get("type") != token_type:
        logger.warning("invalid_token_type", expected=token_type, actual=payload.get("type"))
        return None

    if payload.get("jti") and cache.exists(REVOKED_PREFIX + payload["jti"]):
        logger.warning("token_revoked", user_id=payload.get("sub"))
        return None

    return payload


def decode_token(token: str) -> Optional[str]:
    payload = verify_token(token, "access")
    return payload.get("sub") if payload else None


def refresh_access_token(refresh_token: str) -> Optional[str]:
    """Refresh access token using refresh token"""
    payload = verify_token(refresh_token, "refresh")
    if not payload:
        return None
    return create_access_token(payload.get("sub"))


def revoke_token(token: str) -> bool:
    """Deny a token until it would have expired anyway"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return False
    jti = payload.get("jti")
    if not jti:
        return False
    remaining = int(payload.get("exp", 0) - time.time())
    if remaining <= 0:
        return True
    cache.set(REVOKED_PREFIX + jti, True, expire=remaining)
    logger.info("token_revoked", user_id=payload.get("sub"))
    return True


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user_id = decode_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    user = session.get(User, int(user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_user_from_token(token: Optional[str], session: Session) -> Optional[User]:
    """Resolve a raw token (e.g. a websocket query parameter) to a user"""
    if not token:
        return None
    user_id = decode_token(token)
    if user_id is None:
        return None
    return session.get(User, int(user_id))
