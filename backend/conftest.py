from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

# formadb.database and formadb.security read these at import time.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8192")

from formadb.database import Base, build_engine  # noqa: E402
from formadb.apps.accounts import models as account_models  # noqa: E402
from formadb.apps.training import models as training_models  # noqa: E402

TEST_TABLES = [
    account_models.User.__table__,
    training_models.Formation.__table__,
    training_models.Level.__table__,
    training_models.TrainingSession.__table__,
    training_models.SessionParticipant.__table__,
    training_models.Attendance.__table__,
    training_models.Certificate.__table__,
]


@pytest.fixture()
def db_session():
    """Fresh in-memory database per test, foreign keys enforced."""
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    # Objects stay usable after commit, like a request-scoped session.
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def session_factory(tmp_path):
    """
    Sessionmaker over a file-backed database, so two sessions can hold
    separate connections and race each other's commits.
    """
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        engine.dispose()
