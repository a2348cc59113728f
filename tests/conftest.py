import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("AUDIT_LOG_FILE", os.path.join(tempfile.gettempdir(), "scrutin_tests", "audit.log"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scrutin.db import create_tables, get_session
from scrutin.main import app
from scrutin.models import TerritorialAssignment, TerritorialReference


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    create_tables(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = TestingSession()
    session.add_all(
        [
            TerritorialAssignment(user_id="agent-1", unit_type="departement", unit_code=1),
            TerritorialAssignment(user_id="agent-2", unit_type="arrondissement", unit_code=101),
            TerritorialAssignment(user_id="agent-3", unit_type="departement", unit_code=2, is_active=False),
            TerritorialAssignment(user_id="agent-9", unit_type="departement", unit_code=9),
            TerritorialReference(unit_type="arrondissement", unit_code=101, department_code=1),
            TerritorialReference(unit_type="arrondissement", unit_code=105, department_code=1),
            TerritorialReference(unit_type="arrondissement", unit_code=110, department_code=1),
            TerritorialReference(unit_type="arrondissement", unit_code=900, department_code=9),
            TerritorialReference(unit_type="bureau_vote", unit_code=501, department_code=1),
            TerritorialReference(unit_type="bureau_vote", unit_code=502, department_code=1),
            TerritorialReference(unit_type="bureau_vote", unit_code=901, department_code=9),
        ]
    )
    session.commit()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    def _override_session():
        yield db

    app.dependency_overrides[get_session] = _override_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def clean_payload():
    """Chiffres cohérents : aucune erreur ni avertissement."""
    return {
        "registered_voters": 25000,
        "voters_count": 18500,
        "envelopes_in_ballot_boxes": 18500,
        "valid_suffrages": 17800,
        "null_ballots": 700,
    }
