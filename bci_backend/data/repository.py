"""
Session persistence: sessions, trials, predictions and calibration state.
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from bci_backend.core.config import Settings, settings as default_settings
from bci_backend.core.exceptions import PersistenceError, SessionNotFoundError, ValidationError
from bci_backend.core.logging import get_logger
from bci_backend.data.models import CalibrationState, GameSession, Prediction, Trial

logger = get_logger(__name__)

TARGET_TYPES = ("target", "nontarget")
PREDICTION_LABELS = ("YES", "NO")


def is_correct(target_type: str, prediction: str) -> bool:
    """A trial is correct when the prediction matches the stimulus class."""
    return (
        (target_type == "target" and prediction == "YES")
        or (target_type == "nontarget" and prediction == "NO")
    )


class SessionLockRegistry:
    """
    Per-session locks serializing read-modify-write cycles.

    Trials for different sessions proceed in parallel; trials for the same
    session are applied one at a time. A lock lives only while some caller
    holds or waits for it, so the registry is empty when no session is busy.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock for the duration of the block."""
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
            self._holders[session_id] = self._holders.get(session_id, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[session_id] -= 1
                if self._holders[session_id] == 0:
                    del self._holders[session_id]
                    del self._locks[session_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class SessionRepository:
    """
    Database access for play sessions.

    Methods flush but never commit; the caller owns the transaction so a
    whole trial update lands or rolls back together.
    """

    def __init__(self, db: Session, config: Optional[Settings] = None) -> None:
        self.db = db
        self.config = config or default_settings

    def create_session(self, user_id: str) -> GameSession:
        """Create a session together with its default calibration state."""
        session = GameSession(
            user_id=user_id,
            calibration=CalibrationState(
                flash_speed=self.config.calibration_flash_speed,
                object_count=self.config.calibration_object_count,
                recent_accuracy=self.config.calibration_recent_accuracy,
                confidence_threshold=self.config.calibration_confidence_threshold,
                trial_interval_ms=self.config.calibration_trial_interval_ms
            )
        )
        self.db.add(session)
        self._flush("create_session")

        logger.info("session_created", session_id=session.id, user_id=user_id)
        return session

    def get_session(self, session_id: str) -> Optional[GameSession]:
        """Load a session with calibration, trials and predictions."""
        stmt = (
            select(GameSession)
            .where(GameSession.id == session_id)
            .options(
                selectinload(GameSession.calibration),
                selectinload(GameSession.trials).selectinload(Trial.predictions)
            )
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def require_session(self, session_id: str) -> GameSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def ensure_exists(self, session_id: str) -> None:
        """Raise SessionNotFoundError without loading the session."""
        stmt = select(GameSession.id).where(GameSession.id == session_id)
        if self.db.execute(stmt).scalar_one_or_none() is None:
            raise SessionNotFoundError(session_id)

    def list_sessions(self, user_id: Optional[str] = None, limit: int = 100) -> List[GameSession]:
        stmt = select(GameSession).order_by(GameSession.started_at.desc()).limit(limit)
        if user_id is not None:
            stmt = stmt.where(GameSession.user_id == user_id)
        return list(self.db.execute(stmt).scalars())

    def delete_session(self, session_id: str) -> None:
        """Delete a session; trials, predictions and calibration go with it."""
        session = self.require_session(session_id)
        self.db.delete(session)
        self._flush("delete_session")
        logger.info("session_deleted", session_id=session_id)

    def end_session(self, session_id: str) -> GameSession:
        session = self.require_session(session_id)
        if session.status != "completed":
            session.status = "completed"
            session.ended_at = datetime.now(timezone.utc)
            self._flush("end_session")
            logger.info("session_ended", session_id=session_id, total_trials=session.total_trials)
        return session

    def record_trial(
        self,
        session_id: str,
        trial_number: int,
        target_type: str,
        prediction: str,
        confidence: float,
        response_time_ms: int = 0
    ) -> Trial:
        """
        Upsert a trial by (session, trial number) and attach a prediction.

        An existing trial keeps its stimulus class; its response time and
        correctness are replaced and the new prediction is appended.
        Session aggregates are recomputed afterwards.
        """
        if target_type not in TARGET_TYPES:
            raise ValidationError(f"Unknown target type: {target_type}")
        if prediction not in PREDICTION_LABELS:
            raise ValidationError(f"Unknown prediction: {prediction}")

        session = self.require_session(session_id)
        correct = is_correct(target_type, prediction)

        trial = next((t for t in session.trials if t.trial_number == trial_number), None)
        if trial is None:
            trial = Trial(
                trial_number=trial_number,
                target_type=target_type,
                response_time_ms=response_time_ms,
                correct=correct
            )
            session.trials.append(trial)
        else:
            trial.response_time_ms = response_time_ms
            trial.correct = correct

        trial.predictions.append(Prediction(label=prediction, confidence=confidence))
        self._flush("record_trial")

        self.refresh_aggregates(session)

        logger.info(
            "trial_recorded",
            session_id=session_id,
            trial_number=trial_number,
            target_type=target_type,
            prediction=prediction,
            correct=correct
        )
        return trial

    def refresh_aggregates(self, session: GameSession) -> None:
        """Recompute total_trials and accuracy from the stored trials."""
        total = len(session.trials)
        correct = sum(1 for t in session.trials if t.correct)
        session.total_trials = total
        session.accuracy = correct / total if total > 0 else 0.0
        self._flush("refresh_aggregates")

    def recent_accuracy(self, session: GameSession, window: int = 10, default: float = 0.5) -> float:
        """Fraction of correct trials among the last `window` by trial number."""
        trials = sorted(session.trials, key=lambda t: t.trial_number)[-window:]
        if not trials:
            return default
        return sum(1 for t in trials if t.correct) / len(trials)

    def update_calibration(
        self,
        session_id: str,
        flash_speed: float,
        object_count: int,
        recent_accuracy: float,
        confidence_threshold: Optional[float] = None
    ) -> CalibrationState:
        stmt = select(CalibrationState).where(CalibrationState.session_id == session_id)
        calibration = self.db.execute(stmt).scalar_one_or_none()
        if calibration is None:
            raise SessionNotFoundError(session_id)

        calibration.flash_speed = flash_speed
        calibration.object_count = object_count
        calibration.recent_accuracy = recent_accuracy
        if confidence_threshold is not None:
            calibration.confidence_threshold = confidence_threshold
        calibration.last_trial_time = datetime.now(timezone.utc)
        self._flush("update_calibration")

        return calibration

    def _flush(self, operation: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            logger.error("database_write_failed", operation=operation, error=str(exc))
            raise PersistenceError(f"{operation} failed: {exc.__class__.__name__}") from exc
