"""
Session management endpoints.

Database-backed handlers are plain functions so FastAPI runs them in its
threadpool; the per-session locks then serialize concurrent trials.
"""

from typing import List, Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bci_backend.api.dependencies import get_pipeline, get_session_controller
from bci_backend.core.config import Settings, get_settings
from bci_backend.core.logging import get_logger
from bci_backend.data.database import get_db
from bci_backend.data.repository import SessionRepository
from bci_backend.pipeline.adaptive_session import AdaptiveSessionController
from bci_backend.pipeline.decision_logic import smooth_predictions
from bci_backend.pipeline.trial_pipeline import TrialPipeline

logger = get_logger(__name__)

router = APIRouter()


class SessionCreate(BaseModel):
    """Session creation request."""
    user_id: str = Field(min_length=1, max_length=255)


class TrialCreate(BaseModel):
    """Completed trial reported by the game."""
    trial_number: int = Field(ge=1)
    target_type: Literal["target", "nontarget"]
    prediction: Literal["YES", "NO"]
    confidence: float = Field(ge=0.0, le=1.0)
    response_time: int = Field(0, ge=0)


class TrialSimulate(BaseModel):
    """Trial to simulate and classify server-side."""
    trial_number: int = Field(ge=1)
    target_type: Literal["target", "nontarget"]
    noise_level: float | None = Field(None, ge=0.0, le=1.0)


class PredictionItem(BaseModel):
    """One classifier output in a smoothing request."""
    prediction: Literal["YES", "NO"]
    confidence: float = Field(ge=0.0, le=1.0)


class SmoothRequest(BaseModel):
    """Smoothing request."""
    predictions: List[PredictionItem] = Field(min_length=1)
    window_size: int | None = Field(None, ge=1)


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
def create_session(
    request: SessionCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Create a new session with default calibration state."""
    repo = SessionRepository(db, config=settings)
    session = repo.create_session(request.user_id)
    db.commit()
    return session.to_dict(include_trials=False)


@router.get("/sessions")
def list_sessions(
    user_id: str | None = None,
    db: Session = Depends(get_db)
):
    """List sessions, optionally filtered by user."""
    sessions = SessionRepository(db).list_sessions(user_id=user_id)
    return [session.to_dict(include_trials=False) for session in sessions]


@router.get("/sessions/{session_id}")
def get_session(session_id: str, db: Session = Depends(get_db)):
    """Get session details with calibration and trials."""
    return SessionRepository(db).require_session(session_id).to_dict()


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(
    session_id: str,
    db: Session = Depends(get_db),
    controller: AdaptiveSessionController = Depends(get_session_controller)
):
    """Delete a session and everything it owns."""
    repo = SessionRepository(db)
    repo.ensure_exists(session_id)

    with controller.locks.hold(session_id):
        repo.delete_session(session_id)
        db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/end")
def end_session(session_id: str, db: Session = Depends(get_db)):
    """Mark a session as completed."""
    session = SessionRepository(db).end_session(session_id)
    db.commit()
    return session.to_dict(include_trials=False)


@router.get("/sessions/{session_id}/calibration")
def get_calibration(session_id: str, db: Session = Depends(get_db)):
    """Get the session's adaptive-difficulty state."""
    return SessionRepository(db).require_session(session_id).calibration.to_dict()


@router.post("/sessions/{session_id}/trials", status_code=status.HTTP_201_CREATED)
def record_trial(
    session_id: str,
    request: TrialCreate,
    db: Session = Depends(get_db),
    controller: AdaptiveSessionController = Depends(get_session_controller)
):
    """Record a trial result and adapt the session's difficulty."""
    outcome = controller.record_trial(
        db,
        session_id,
        trial_number=request.trial_number,
        target_type=request.target_type,
        prediction=request.prediction,
        confidence=request.confidence,
        response_time_ms=request.response_time
    )
    return outcome.to_dict()


@router.post("/sessions/{session_id}/trials/simulate", status_code=status.HTTP_201_CREATED)
def simulate_trial(
    session_id: str,
    request: TrialSimulate,
    db: Session = Depends(get_db),
    pipeline: TrialPipeline = Depends(get_pipeline),
    controller: AdaptiveSessionController = Depends(get_session_controller)
):
    """Simulate, classify and record a trial in one call."""
    SessionRepository(db).ensure_exists(session_id)

    result = pipeline.run(request.target_type, noise_level=request.noise_level)
    outcome = controller.record_trial(
        db,
        session_id,
        trial_number=request.trial_number,
        target_type=request.target_type,
        prediction=result.prediction.label,
        confidence=result.prediction.confidence,
        response_time_ms=int(round(result.latency_ms))
    )

    response = outcome.to_dict()
    response['pipeline'] = result.to_dict()
    return response


@router.post("/sessions/{session_id}/smooth-predictions")
async def smooth(
    session_id: str,
    request: SmoothRequest,
    settings: Settings = Depends(get_settings)
):
    """Combine recent predictions into one stabilized decision."""
    window = request.window_size or settings.smoothing_window
    predictions = [item.model_dump() for item in request.predictions]
    smoothed = smooth_predictions(predictions, min(window, len(predictions)))
    return smoothed.to_dict()
