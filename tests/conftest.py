import sys
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from twilio.base.exceptions import TwilioRestException

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agreement_manager.auth.jwt import create_access_token, get_password_hash  # noqa: E402
from agreement_manager.config import Settings  # noqa: E402
from agreement_manager.core.rate_limit import limiter  # noqa: E402
from agreement_manager.database import Database  # noqa: E402
from agreement_manager.main import create_app  # noqa: E402
from agreement_manager.models.models import Agreement, User  # noqa: E402
from agreement_manager.services.agreements import compute_payment_due  # noqa: E402
from agreement_manager.services.whatsapp import WhatsAppClient  # noqa: E402

DEFAULT_PASSWORD = "changeme123"


class FakeMessages:
    """Stands in for ``twilio.rest.Client.messages``."""

    def __init__(self) -> None:
        self.calls: List[Dict] = []
        self.rejected_numbers: set = set()

    def create(self, **params):
        self.calls.append(params)
        if params["to"] in self.rejected_numbers:
            raise TwilioRestException(400, "/Messages.json", msg="Invalid 'To' number")
        return SimpleNamespace(sid=f"SM{len(self.calls):032d}")


class FakeTwilio:
    def __init__(self) -> None:
        self.messages = FakeMessages()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow on purpose; hash the shared test password once
    return get_password_hash(DEFAULT_PASSWORD)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        twilio_account_sid="ACtest",
        twilio_auth_token="test-token",
        twilio_whatsapp_number="+14155238886",
        twilio_content_sid=None,
        snapshot_dir=str(tmp_path / "snapshots"),
    )


@pytest.fixture
def database(settings: Settings) -> Generator[Database, None, None]:
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database: Database) -> Generator[Session, None, None]:
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_twilio() -> FakeTwilio:
    return FakeTwilio()


@pytest.fixture
def client(settings: Settings, database: Database, fake_twilio: FakeTwilio) -> Generator[TestClient, None, None]:
    app = create_app(settings, database=database, whatsapp_client=WhatsAppClient(settings, client=fake_twilio))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_user(db_session: Session, password_hash: str) -> Callable[..., User]:
    def _create(username: str = "alice", role: str = "user", email: Optional[str] = None) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=password_hash,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user, settings)}"}

    return _headers


@pytest.fixture
def create_agreement(db_session: Session) -> Callable[..., Agreement]:
    def _create(owner: User, **fields) -> Agreement:
        values = {
            "owner_name": "Asha Rao",
            "location": "Kothrud, Pune",
            "agent_name": "Raj",
            "agreement_date": date(2024, 1, 15),
            "total_payment": Decimal("0.00"),
            "payment_from_owner": Decimal("0.00"),
            "payment_from_tenant": Decimal("0.00"),
        }
        values.update(fields)
        agreement = Agreement(user_id=owner.id, **values)
        agreement.payment_due = compute_payment_due(
            agreement.total_payment, agreement.payment_from_owner, agreement.payment_from_tenant
        )
        db_session.add(agreement)
        db_session.commit()
        return agreement

    return _create
