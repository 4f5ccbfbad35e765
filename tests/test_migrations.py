from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from agreement_manager.database import Base, Database
from agreement_manager.manage_create_admin import create_admin
from agreement_manager.models.models import Agreement, User

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "agreement_manager" / "alembic.ini"


def _upgrade(db_url: str) -> None:
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", db_url)
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")


def test_baseline_migration_matches_models(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'migrations.db'}"
    _upgrade(db_url)

    engine = sa.create_engine(db_url)
    try:
        inspector = sa.inspect(engine)
        for table in ("users", "agreements"):
            migrated = {column["name"] for column in inspector.get_columns(table)}
            assert migrated == set(Base.metadata.tables[table].columns.keys())

        with sa.orm.Session(engine) as session:
            assert session.query(User).all() == []
            assert session.query(Agreement).all() == []
    finally:
        engine.dispose()


def test_create_admin_on_migrated_database(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'admin.db'}"
    _upgrade(db_url)
    database = Database(db_url)
    try:
        first = create_admin(database, "root", "root@example.com", "changeme123")
        again = create_admin(database, "root", "root@example.com", "changeme123")

        with database.session_scope() as session:
            user = session.get(User, first)
            assert user.role == "admin"
            assert user.hashed_password != "changeme123"
        assert again is None
    finally:
        database.dispose()


def test_create_admin_promotes_existing_user(database, create_user):
    user = create_user("clerk")

    promoted = create_admin(database, "clerk", "clerk@example.com", "ignored-password")

    assert promoted == user.id
    with database.session_scope() as session:
        assert session.get(User, promoted).role == "admin"
