import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from .config import settings
from .models.user import User
from .repository import UserRepository

security = HTTPBearer(auto_error=False)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def get_repository(request: Request) -> UserRepository:
    return request.app.state.repository


def _create_token(user: User, expires: timedelta, token_type: str) -> str:
    payload = {
        "sub": user.username,
        "exp": datetime.now(timezone.utc) + expires,
        "type": token_type,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    return _create_token(
        user, timedelta(minutes=settings.access_token_expire_minutes), ACCESS_TOKEN
    )


def create_refresh_token(user: User) -> str:
    return _create_token(
        user, timedelta(minutes=settings.refresh_token_expire_minutes), REFRESH_TOKEN
    )


def decode_token(token: str, token_type: str) -> str:
    """Return the username carried by a valid token of the given type."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    username: Optional[str] = payload.get("sub")
    if username is None or payload.get("type") != token_type:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    return username


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repository: UserRepository = Depends(get_repository),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    username = decode_token(credentials.credentials, ACCESS_TOKEN)

    user = repository.get_user_by_username(username)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return current_user


def is_cron_request(authorization: Optional[str]) -> bool:
    """Check an ``Authorization`` header against ``Bearer <CRON_SECRET>``."""
    if authorization is None:
        return False
    expected = f"Bearer {settings.cron_secret}"
    return secrets.compare_digest(authorization.encode(), expected.encode())
