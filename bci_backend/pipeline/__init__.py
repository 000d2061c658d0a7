"""
BCI processing pipeline components.
"""

from bci_backend.pipeline.adaptive_session import AdaptiveSessionController, TrialOutcome
from bci_backend.pipeline.decision_logic import (
    DifficultyUpdate,
    SmoothedDecision,
    adapt_difficulty,
    smooth_predictions,
)
from bci_backend.pipeline.trial_pipeline import TrialPipeline, TrialResult

__all__ = [
    "AdaptiveSessionController",
    "TrialOutcome",
    "DifficultyUpdate",
    "SmoothedDecision",
    "adapt_difficulty",
    "smooth_predictions",
    "TrialPipeline",
    "TrialResult",
]
