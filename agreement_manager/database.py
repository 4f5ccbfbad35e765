import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one application instance.

    Created when the app starts and disposed when it stops; request handlers
    get sessions from it through ``api.dependencies.get_db``.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.database_url = database_url
        is_sqlite = database_url.startswith("sqlite")
        if is_sqlite and database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            Path(database_url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)

        self.engine: Engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def create_all(self) -> None:
        # In dev we make sure tables exist. Alembic migrations should be used for real schema evolution.
        from .models import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        logger.info("Disposing database engine for %s", self.engine.url.render_as_string(hide_password=True))
        self.engine.dispose()
