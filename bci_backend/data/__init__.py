"""
Data management - database engine, ORM models, session repository.
"""

from bci_backend.data.database import Base, SessionLocal, engine, get_db, init_db
from bci_backend.data.models import CalibrationState, GameSession, Prediction, Trial
from bci_backend.data.repository import SessionLockRegistry, SessionRepository

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "GameSession",
    "Trial",
    "Prediction",
    "CalibrationState",
    "SessionLockRegistry",
    "SessionRepository",
]
