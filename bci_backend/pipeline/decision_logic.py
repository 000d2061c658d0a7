"""
Decision logic for the P300 game.

- Multi-trial smoothing of classifier outputs
- Adaptive difficulty scaling from rolling accuracy

Both are pure functions; callers persist the results.
"""

import math
from dataclasses import dataclass
from typing import Literal, Sequence

from bci_backend.core.logging import get_logger

logger = get_logger(__name__)

Decision = Literal["YES", "NO"]

# Difficulty bounds
MIN_FLASH_SPEED = 0.6
MAX_FLASH_SPEED = 1.5
MIN_OBJECT_COUNT = 3
MAX_OBJECT_COUNT = 4

HIGH_ACCURACY = 0.7
LOW_ACCURACY = 0.4

NOTIFY_ADD_OBJECT = "Great job! Adding more objects."
NOTIFY_SPEED_UP = "Excellent! Speeding up the game."
NOTIFY_REMOVE_OBJECT = "Let's slow down a bit. Removing an object."
NOTIFY_SLOW_DOWN = "No worries! We'll take it slower."
NOTIFY_KEEP_GOING = "You're doing great! Keep going!"


@dataclass(frozen=True)
class SmoothedDecision:
    """Stabilized decision over several trials."""
    decision: Decision
    confidence: float

    def to_dict(self) -> dict:
        return {'decision': self.decision, 'confidence': self.confidence}


@dataclass(frozen=True)
class DifficultyUpdate:
    """Output of one difficulty adaptation step."""
    new_flash_speed: float
    new_object_count: int
    notification: str

    def to_dict(self) -> dict:
        return {
            'new_flash_speed': self.new_flash_speed,
            'new_object_count': self.new_object_count,
            'notification': self.notification
        }


def smooth_predictions(
    predictions: Sequence[dict],
    window_size: int = 5
) -> SmoothedDecision:
    """
    Combine recent predictions into one decision.

    Confidence is a recency-weighted mean (oldest weight 1, newest weight
    k); the decision is a majority vote where YES wins ties.

    Args:
        predictions: Oldest-first dicts with 'prediction' and 'confidence'
        window_size: Number of most recent predictions to consider

    Returns:
        SmoothedDecision (NO / 0.5 for an empty history)
    """
    if not predictions:
        return SmoothedDecision(decision="NO", confidence=0.5)

    window = list(predictions)[-max(window_size, 1):]

    weighted = 0.0
    weight_sum = 0
    for i, entry in enumerate(window):
        weight = i + 1
        weighted += float(entry['confidence']) * weight
        weight_sum += weight

    yes_count = sum(1 for entry in window if entry['prediction'] == "YES")
    decision: Decision = "YES" if yes_count >= math.ceil(len(window) / 2) else "NO"

    return SmoothedDecision(decision=decision, confidence=weighted / weight_sum)


def adapt_difficulty(
    recent_accuracy: float,
    current_flash_speed: float,
    current_object_count: int
) -> DifficultyUpdate:
    """
    Adjust game difficulty from recent performance.

    - accuracy > 0.7: faster flashes, then one more object (or faster still)
    - accuracy < 0.4: slower flashes, then one fewer object (or slower still)
    - otherwise: unchanged

    Args:
        recent_accuracy: Accuracy over recent trials (0-1)
        current_flash_speed: Current flash speed multiplier
        current_object_count: Current number of objects

    Returns:
        DifficultyUpdate within [0.6, 1.5] speed and [3, 4] objects
    """
    new_flash_speed = current_flash_speed
    new_object_count = current_object_count

    if recent_accuracy > HIGH_ACCURACY:
        new_flash_speed = min(MAX_FLASH_SPEED, current_flash_speed * 1.1)
        if current_object_count < MAX_OBJECT_COUNT:
            new_object_count = current_object_count + 1
            notification = NOTIFY_ADD_OBJECT
        else:
            new_flash_speed = min(MAX_FLASH_SPEED, new_flash_speed * 1.15)
            notification = NOTIFY_SPEED_UP
    elif recent_accuracy < LOW_ACCURACY:
        new_flash_speed = max(MIN_FLASH_SPEED, current_flash_speed * 0.9)
        if current_object_count > MIN_OBJECT_COUNT:
            new_object_count = current_object_count - 1
            notification = NOTIFY_REMOVE_OBJECT
        else:
            new_flash_speed = max(MIN_FLASH_SPEED, new_flash_speed * 0.85)
            notification = NOTIFY_SLOW_DOWN
    else:
        notification = NOTIFY_KEEP_GOING

    # Out-of-range inputs are pulled back into bounds
    new_flash_speed = min(MAX_FLASH_SPEED, max(MIN_FLASH_SPEED, new_flash_speed))
    new_object_count = min(MAX_OBJECT_COUNT, max(MIN_OBJECT_COUNT, new_object_count))

    logger.debug(
        "difficulty_adapted",
        recent_accuracy=recent_accuracy,
        flash_speed=new_flash_speed,
        object_count=new_object_count
    )

    return DifficultyUpdate(
        new_flash_speed=new_flash_speed,
        new_object_count=new_object_count,
        notification=notification
    )
