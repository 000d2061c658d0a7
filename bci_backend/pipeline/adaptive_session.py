"""
Adaptive session loop.

Records a trial, recomputes the session aggregates, derives the rolling
accuracy and feeds it to the difficulty controller, then persists the new
calibration state. The whole cycle runs in one transaction under a
per-session lock.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from bci_backend.core.config import Settings, settings as default_settings
from bci_backend.core.exceptions import BCIError
from bci_backend.core.logging import bound_context, get_logger
from bci_backend.data.repository import SessionLockRegistry, SessionRepository
from bci_backend.pipeline.decision_logic import adapt_difficulty

logger = get_logger(__name__)


@dataclass
class TrialOutcome:
    """Serialized result of one recorded trial."""
    trial: dict
    calibration: dict
    notification: str
    recent_accuracy: float
    session_accuracy: float

    def to_dict(self) -> dict:
        return {
            'trial': self.trial,
            'calibration': self.calibration,
            'feedback': {
                'notification': self.notification,
                'recent_accuracy': self.recent_accuracy,
                'session_accuracy': self.session_accuracy
            }
        }


class AdaptiveSessionController:
    """
    Applies trials to sessions and adapts their difficulty.
    """

    def __init__(
        self,
        locks: Optional[SessionLockRegistry] = None,
        config: Optional[Settings] = None
    ):
        """
        Initialize controller.

        Args:
            locks: Per-session lock registry shared by all requests
            config: Settings providing the rolling accuracy window
        """
        self.locks = locks or SessionLockRegistry()
        self.config = config or default_settings

    def record_trial(
        self,
        db: Session,
        session_id: str,
        trial_number: int,
        target_type: str,
        prediction: str,
        confidence: float,
        response_time_ms: int = 0
    ) -> TrialOutcome:
        """
        Record one trial and update the session's calibration state.

        On any failure the transaction is rolled back, so a failed trial
        never counts toward the rolling accuracy.
        """
        repo = SessionRepository(db, config=self.config)
        repo.ensure_exists(session_id)

        with self.locks.hold(session_id), bound_context(session_id=session_id):
            try:
                trial = repo.record_trial(
                    session_id,
                    trial_number,
                    target_type,
                    prediction,
                    confidence,
                    response_time_ms
                )
                session = repo.require_session(session_id)

                recent_accuracy = repo.recent_accuracy(
                    session,
                    window=self.config.recent_accuracy_window,
                    default=self.config.calibration_recent_accuracy
                )
                update = adapt_difficulty(
                    recent_accuracy,
                    session.calibration.flash_speed,
                    session.calibration.object_count
                )
                calibration = repo.update_calibration(
                    session_id,
                    update.new_flash_speed,
                    update.new_object_count,
                    recent_accuracy
                )

                db.commit()
            except Exception as exc:
                db.rollback()
                client_error = isinstance(exc, BCIError) and exc.status_code < 500
                log = logger.debug if client_error else logger.warning
                log("trial_rolled_back", trial_number=trial_number, error_type=type(exc).__name__)
                raise

            outcome = TrialOutcome(
                trial=trial.to_dict(),
                calibration=calibration.to_dict(),
                notification=update.notification,
                recent_accuracy=recent_accuracy,
                session_accuracy=session.accuracy
            )

            logger.info(
                "difficulty_adapted",
                trial_number=trial_number,
                recent_accuracy=recent_accuracy,
                flash_speed=update.new_flash_speed,
                object_count=update.new_object_count
            )

        return outcome
