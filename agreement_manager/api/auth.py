import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..api.dependencies import get_db, get_settings_dependency
from ..auth.jwt import create_access_token, get_current_user, get_password_hash, verify_password
from ..config import Settings
from ..constants import ROLE_ADMIN, ROLE_USER
from ..core.errors import Unauthorized
from ..core.rate_limit import rate_limit_dependency
from ..models.models import User
from ..schemas.schemas import AuthResponse, LoginRequest, RegisterRequest, UserRead

logger = logging.getLogger(__name__)

router = APIRouter()


def _build_auth_response(user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user, settings),
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserRead.model_validate(user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit_dependency("auth.register", limit=10, window_seconds=60))],
)
def register_user(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> AuthResponse:
    existing = (
        db.query(User)
        .filter(or_(User.username == payload.username, func.lower(User.email) == payload.email.lower()))
        .first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="Username or email already exists")

    # The first account to register administers the installation
    role = ROLE_ADMIN if db.query(func.count(User.id)).scalar() == 0 else ROLE_USER
    user = User(
        username=payload.username,
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s) with role %s", user.id, user.username, role)
    return _build_auth_response(user, settings)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(rate_limit_dependency("auth.login", limit=20, window_seconds=60))],
)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> AuthResponse:
    user = db.query(User).filter(User.username == payload.username).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise Unauthorized("Invalid credentials")
    return _build_auth_response(user, settings)


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user
