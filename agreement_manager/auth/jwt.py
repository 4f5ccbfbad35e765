from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..api.dependencies import get_db, get_settings_dependency
from ..config import Settings
from ..core.errors import Forbidden, Unauthorized
from ..models.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format, e.g. a hand-edited snapshot
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: User, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access token required")

    invalid = Unauthorized("Invalid or expired token")
    try:
        payload = decode_token(credentials.credentials, settings)
    except JWTError:
        raise invalid

    user_id: Optional[str] = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise invalid
    try:
        user = db.get(User, int(user_id))
    except ValueError:
        raise invalid
    if user is None:
        raise invalid
    return user


def require_roles(*allowed_roles: str):
    allowed = set(allowed_roles)

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if not allowed or user.role in allowed:
            return user
        raise Forbidden("Operation not permitted for your role")

    return role_checker
