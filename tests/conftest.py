# ruff: noqa: E402
import os
import tempfile
from collections import deque
from typing import Any, List, Optional

import pytest
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

# Set testing environment flags before importing the app or settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./tests/test.db")
os.environ.setdefault("UPLOADS_ROOT", tempfile.mkdtemp(prefix="ecoscan-uploads-"))
os.environ.pop("CLASSIFIER_URL", None)
os.environ.pop("COMPLIANCE_URL", None)

from ecoscan.core.config import settings
from ecoscan.core.database import Base, build_engine, get_db
from ecoscan.core.events import DomainEvent, EventBus
from ecoscan.models import registry  # noqa: F401
from ecoscan.modules.accounts.actor import ActorContext
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.accounts.security import hash_password
from ecoscan.modules.gateways.contracts import (
    ClassificationResult,
    ComplianceAction,
    ComplianceVerdict,
)
from ecoscan.modules.gateways.dependencies import (
    get_classification_gateway,
    get_compliance_gateway,
    get_storage,
)
from ecoscan.modules.gateways.storage import LocalStorage
from ecoscan.modules.scans.models import ItemCategory
from ecoscan.main import app
from ecoscan.oauth2 import create_access_token
from tests.testclient import TestClient

test_db_url = settings.get_database_url(use_test=True)
engine = build_engine(test_db_url)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)


def _clear_tables() -> None:
    with engine.begin() as connection:
        if engine.dialect.name == "sqlite":
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())
        else:
            table_names = ", ".join(
                f'"{tbl.name}"' for tbl in Base.metadata.sorted_tables
            )
            if table_names:
                connection.execute(
                    text(f"TRUNCATE {table_names} RESTART IDENTITY CASCADE")
                )


# Autouse cleanup keeps the DB isolated across all tests, including those that
# do not explicitly request the session fixture.
@pytest.fixture(autouse=True, scope="function")
def _clean_db_between_tests():
    _clear_tables()
    yield


@pytest.fixture(scope="function")
def session():
    """A fresh database session per test."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def other_session():
    """A second, independent session for concurrency scenarios."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ==================== Fakes ====================


class RecordingBus(EventBus):
    """EventBus that remembers every published event."""

    def __init__(self):
        super().__init__()
        self.events: List[DomainEvent] = []
        self.subscribe(DomainEvent, self.events.append)

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


class FakeClassifier:
    """Returns queued outcomes first, in order, then the default outcome."""

    def __init__(self, default):
        self.default = default
        self.outcomes = deque()
        self.calls: List[tuple] = []

    def queue(self, *outcomes) -> None:
        self.outcomes.extend(outcomes)

    def classify(self, image: bytes, content_type: Optional[str] = None):
        self.calls.append((image, content_type))
        outcome = self.outcomes.popleft() if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeCompliance:
    def __init__(self, verdict: Optional[ComplianceVerdict] = None):
        self.verdict = verdict or ComplianceVerdict(
            risk_score=2, action=ComplianceAction.AUTO_APPROVE, source="fake"
        )
        self.calls: List[tuple] = []

    def check(self, title, description, category, image_url=None):
        self.calls.append((title, description, category, image_url))
        return self.verdict


def classified(
    category=ItemCategory.CLOTHING,
    points: int = 10,
    name: str = "Denim jacket",
    **kwargs: Any,
) -> ClassificationResult:
    return ClassificationResult(
        name=name,
        category=ItemCategory(category),
        confidence=kwargs.pop("confidence", 0.9),
        points=points,
        **kwargs,
    )


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def classifier():
    return FakeClassifier(classified())


@pytest.fixture
def compliance():
    return FakeCompliance()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "uploads", "/uploads")


# ==================== Accounts ====================


def _create_account(session, **fields) -> Account:
    account = Account(**fields)
    session.add(account)
    session.commit()
    session.refresh(account)
    return account


@pytest.fixture
def make_member(session):
    counter = {"n": 0}

    def factory(points: int = 0, *, is_admin: bool = False, password="password123", **fields):
        counter["n"] += 1
        n = counter["n"]
        return _create_account(
            session,
            email=fields.pop("email", f"member{n}@example.com"),
            username=fields.pop("username", f"member{n}"),
            hashed_password=hash_password(password),
            is_admin=is_admin,
            total_points=points,
            level=points // 100 + 1,
            **fields,
        )

    return factory


@pytest.fixture
def make_guest(session):
    def factory(device_id: str = "guest_device1", **fields):
        return _create_account(session, device_id=device_id, is_guest=True, **fields)

    return factory


@pytest.fixture
def member(make_member):
    return make_member()


@pytest.fixture
def admin(make_member):
    return make_member(is_admin=True, email="admin@example.com", username="admin")


def actor_of(account: Account) -> ActorContext:
    return ActorContext.for_account(account)


# ==================== HTTP ====================


@pytest.fixture(scope="function")
def client(session, classifier, compliance, storage):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classification_gateway] = lambda: classifier
    app.dependency_overrides[get_compliance_gateway] = lambda: compliance
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        try:
            yield test_client
        finally:
            app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    def factory(account: Account) -> str:
        return create_access_token({"account_id": account.id})

    return factory


@pytest.fixture
def member_headers(member, token_for):
    return TestClient.bearer(token_for(member))


@pytest.fixture
def admin_headers(admin, token_for):
    return TestClient.bearer(token_for(admin))
