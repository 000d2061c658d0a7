"""
Shared fixtures: in-memory database and a wired test client.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bci_backend.api.main import create_app
from bci_backend.core.config import Settings
from bci_backend.data.database import Base, get_db
from bci_backend.data import models  # noqa: F401
from bci_backend.eeg.simulator import EEGSimulator
from bci_backend.ml.lda_classifier import LDAClassifier
from bci_backend.pipeline.trial_pipeline import TrialPipeline


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        eeg_seed=7,
        classifier_mode="default"
    )


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    """Database session for direct repository tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def pipeline():
    """Seeded pipeline with the default fixed-parameter classifier."""
    classifier = LDAClassifier.from_parameters([2.5, 3.0, 0.5], -1.2)
    return TrialPipeline(classifier=classifier, simulator=EEGSimulator(seed=42))


@pytest.fixture
def client(test_settings, session_factory, pipeline):
    """Test client backed by the in-memory database."""
    app = create_app(settings=test_settings, pipeline=pipeline, create_tables=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client
