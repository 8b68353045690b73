from datetime import datetime, timedelta, timezone
from hmac import compare_digest
from typing import Optional, Annotated

import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from opscadence.config import settings
from opscadence.schemas.auth import TokenData, User, UserInDB

log = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


# Operator account from settings, hashed lazily on first use
_OPERATOR = None


def get_operator():
    global _OPERATOR
    if _OPERATOR is None:
        _OPERATOR = UserInDB(
            username=settings.admin_username,
            full_name="Operator",
            disabled=False,
            hashed_password=get_password_hash(settings.admin_password)
        )
    return _OPERATOR


def get_user(username: str):
    operator = get_operator()
    if username == operator.username:
        return operator
    return None


def authenticate_user(username: str, password: str):
    user = get_user(username)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception
    user = get_user(token_data.username)
    if user is None:
        raise credentials_exception
    return user


def get_current_active_user(current_user: Annotated[User, Depends(get_current_user)]):
    if current_user.disabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def verify_cron_request(request: Request) -> str:
    """
    Authenticate a periodic trigger.

    Accepts `Authorization: Bearer <cron_secret>`, or the platform cron
    User-Agent marker when trust_platform_cron is enabled. Returns the trigger
    source ('cron_secret' or 'platform').
    """
    auth_header = request.headers.get("Authorization", "")
    if settings.cron_secret and compare_digest(auth_header, f"Bearer {settings.cron_secret}"):
        return "cron_secret"

    user_agent = request.headers.get("User-Agent", "")
    if settings.trust_platform_cron and settings.cron_platform_user_agent in user_agent:
        return "platform"

    log.warning("Rejected unauthenticated cron trigger")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
