"""
Seed the database with a demo session.

Creates one session and plays five simulated trials through the full
pipeline, so the dashboard has history to show:
    python scripts/seed_db.py [--user demo-user-001] [--trials 5]
"""

import argparse
import sys

from bci_backend.core.config import settings
from bci_backend.core.logging import get_logger
from bci_backend.data.database import SessionLocal, init_db
from bci_backend.data.repository import SessionRepository
from bci_backend.pipeline.adaptive_session import AdaptiveSessionController
from bci_backend.pipeline.trial_pipeline import TrialPipeline

logger = get_logger(__name__)


def seed(user_id: str, n_trials: int) -> str:
    """Create a session and record n_trials simulated trials."""
    pipeline = TrialPipeline.from_settings(settings)
    controller = AdaptiveSessionController(config=settings)

    db = SessionLocal()
    try:
        session = SessionRepository(db).create_session(user_id)
        db.commit()
        session_id = session.id
        print(f"✓ Created session: {session_id}")

        for trial_number in range(1, n_trials + 1):
            target_type = "target" if trial_number % 2 == 0 else "nontarget"
            result = pipeline.run(target_type)

            outcome = controller.record_trial(
                db,
                session_id,
                trial_number=trial_number,
                target_type=target_type,
                prediction=result.prediction.label,
                confidence=result.prediction.confidence,
                response_time_ms=int(round(result.latency_ms))
            )
            print(
                f"✓ Trial {trial_number}: {target_type} -> {result.prediction.label} "
                f"({result.prediction.confidence:.2f}), {outcome.notification}"
            )
    finally:
        db.close()

    return session_id


def main():
    parser = argparse.ArgumentParser(description="Seed the BCI game database")
    parser.add_argument("--user", default="demo-user-001", help="user id for the demo session")
    parser.add_argument("--trials", type=int, default=5, help="number of trials to simulate")
    args = parser.parse_args()

    try:
        init_db()
        session_id = seed(args.user, args.trials)
    except Exception as e:
        logger.exception("database_seed_failed", error=str(e))
        print(f"✗ Seeding failed: {e}")
        sys.exit(1)

    logger.info("database_seeded", session_id=session_id, trials=args.trials)
    print("✓ Seeding complete")


if __name__ == "__main__":
    main()
