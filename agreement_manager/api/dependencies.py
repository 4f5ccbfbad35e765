from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
