"""
SQLAlchemy database models.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from bci_backend.data.database import Base


def generate_uuid():
    """Generate UUID for primary keys."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameSession(Base):
    """One play session - owns its trials and calibration state."""

    __tablename__ = "sessions"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String(255), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), default="active", nullable=False)  # 'active', 'completed'

    # Aggregates, recomputed after every trial
    total_trials = Column(Integer, default=0, nullable=False)
    accuracy = Column(Float, default=0.0, nullable=False)

    # Relationships
    trials = relationship(
        "Trial",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Trial.trial_number"
    )
    calibration = relationship(
        "CalibrationState",
        back_populates="session",
        uselist=False,
        cascade="all, delete-orphan"
    )

    def to_dict(self, include_trials: bool = True) -> dict:
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
            'status': self.status,
            'total_trials': self.total_trials,
            'accuracy': self.accuracy,
            'calibration': self.calibration.to_dict() if self.calibration else None
        }
        if include_trials:
            data['trials'] = [trial.to_dict() for trial in self.trials]
        return data

    def __repr__(self):
        return f"<GameSession(id={self.id}, user_id={self.user_id}, trials={self.total_trials})>"


class Trial(Base):
    """One completed stimulus presentation."""

    __tablename__ = "trials"
    __table_args__ = (
        UniqueConstraint("session_id", "trial_number", name="uq_trials_session_trial_number"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    session_id = Column(
        String,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    trial_number = Column(Integer, nullable=False)
    target_type = Column(String(20), nullable=False)  # 'target', 'nontarget'
    stimulus_time = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    response_time_ms = Column(Integer, nullable=False, default=0)
    correct = Column(Boolean, nullable=False)

    # Relationships
    session = relationship("GameSession", back_populates="trials")
    predictions = relationship(
        "Prediction",
        back_populates="trial",
        cascade="all, delete-orphan",
        order_by="Prediction.id"
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'trial_number': self.trial_number,
            'target_type': self.target_type,
            'stimulus_time': self.stimulus_time.isoformat() if self.stimulus_time else None,
            'response_time_ms': self.response_time_ms,
            'correct': self.correct,
            'predictions': [p.to_dict() for p in self.predictions]
        }

    def __repr__(self):
        return f"<Trial(session_id={self.session_id}, number={self.trial_number}, correct={self.correct})>"


class Prediction(Base):
    """Classifier output recorded for a trial."""

    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trial_id = Column(
        String,
        ForeignKey("trials.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    label = Column(String(3), nullable=False)  # 'YES', 'NO'
    confidence = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    trial = relationship("Trial", back_populates="predictions")

    def to_dict(self) -> dict:
        return {
            'prediction': self.label,
            'confidence': self.confidence,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None
        }

    def __repr__(self):
        return f"<Prediction(trial_id={self.trial_id}, label={self.label}, confidence={self.confidence:.2f})>"


class CalibrationState(Base):
    """Live adaptive-difficulty state - exactly one per session."""

    __tablename__ = "calibration_states"

    id = Column(String, primary_key=True, default=generate_uuid)
    session_id = Column(
        String,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    flash_speed = Column(Float, default=1.0, nullable=False)
    object_count = Column(Integer, default=3, nullable=False)
    recent_accuracy = Column(Float, default=0.5, nullable=False)
    confidence_threshold = Column(Float, default=0.5, nullable=False)
    trial_interval_ms = Column(Integer, default=2000, nullable=False)
    last_trial_time = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    session = relationship("GameSession", back_populates="calibration")

    def to_dict(self) -> dict:
        return {
            'session_id': self.session_id,
            'flash_speed': self.flash_speed,
            'object_count': self.object_count,
            'recent_accuracy': self.recent_accuracy,
            'confidence_threshold': self.confidence_threshold,
            'trial_interval_ms': self.trial_interval_ms,
            'last_trial_time': self.last_trial_time.isoformat() if self.last_trial_time else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return (
            f"<CalibrationState(session_id={self.session_id}, "
            f"flash_speed={self.flash_speed}, objects={self.object_count})>"
        )
