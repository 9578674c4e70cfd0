from datetime import datetime, timezone
from pathlib import Path
import os
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]

# Ensure repo root is importable regardless of where pytest was started from.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read once, at first import of the backend.
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORE_RETRY_DELAY_SECONDS", "0")

from onboarding.models import (
    GateProgress,
    Partner,
    QuestionField,
    QuestionnaireSubmission,
    Signature,
)
from onboarding.storage import InMemoryBlobStore, RetryPolicy

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def root():
    return ROOT


# ===============================
# Domain builders
# ===============================

@pytest.fixture
def t0():
    return T0


@pytest.fixture
def signature():
    return Signature(
        type="typed",
        data="Pat Owner",
        signer_name="Pat Owner",
        signer_email="pam@example.com",
        timestamp=T0,
    )


@pytest.fixture
def make_partner():
    def _make(partner_id="partner-1", current_gate="pre-contract", gates=None, **kw):
        kw.setdefault("partner_name", "Acme Solar")
        kw.setdefault("pam_owner", "pam@example.com")
        return Partner(
            id=partner_id,
            current_gate=current_gate,
            gates=gates if gates is not None else {current_gate: GateProgress(gate_id=current_gate)},
            created_at=T0,
            updated_at=T0,
            **kw,
        )

    return _make


@pytest.fixture
def make_submission(signature):
    def _make(submission_id, questionnaire_id, status="pass", partner_id="partner-1", **kw):
        return QuestionnaireSubmission(
            id=submission_id,
            questionnaire_id=questionnaire_id,
            partner_id=partner_id,
            overall_status=status,
            signature=signature,
            submitted_by="pam@example.com",
            submitted_by_role="PAM",
            created_at=T0,
            updated_at=T0,
            **kw,
        )

    return _make


@pytest.fixture
def field():
    def _make(field_id, label=None, type="text", order=0, **kw):
        return QuestionField(id=field_id, type=type, label=label if label is not None else field_id.upper(), order=order, **kw)

    return _make


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def no_delay():
    return RetryPolicy(max_retries=3, delay_seconds=0)


# ===============================
# HTTP / API test infrastructure
# ===============================

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db import Base, get_db


@pytest.fixture(scope="session")
def test_engine():
    """
    SQLite in-memory engine shared by the whole session.

    For SQLite in-memory, tables disappear across connections unless we use
    StaticPool and "sqlite://" (single shared in-memory DB).
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def db(test_engine):
    """SQLAlchemy Session, rolled back after each test."""

    connection = test_engine.connect()
    transaction = connection.begin()

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=connection,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(scope="function")
def client(db):
    """FastAPI TestClient with get_db overridden to the test session."""

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth(email: str, role: str) -> dict:
    return {"X-User-Email": email, "X-User-Role": role}


@pytest.fixture
def auth_headers():
    return auth


@pytest.fixture
def as_admin():
    return auth("admin@example.com", "Admin")


@pytest.fixture
def as_pam():
    return auth("pam@example.com", "PAM")


@pytest.fixture
def as_pdm():
    return auth("pdm@example.com", "PDM")
