"""
Cron job: retry evaluations of descriptive answers.

Picks up responses whose evaluation FAILED, or that have been PENDING longer
than EVALUATION_STALE_PENDING_MINUTES, and sends each to the evaluation
service once more. Intended to run every few minutes.

Usage:
    cd backend
    python scripts/reconcile_evaluations.py [--limit N]

Exit codes:
    0 - Success
    1 - Database error
    2 - Reconciliation error
    3 - Configuration/import error
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("evaluation_reconcile_cron")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of responses to re-evaluate in this run",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Defer imports so config/import failures produce exit code 3
    try:
        from datetime import timedelta

        from app.core.config import settings
        from app.core.datetime_utils import utc_now
        from app.core.evaluation_dispatch import reconcile_evaluations
        from app.core.exceptions import DatabaseOperationError
        from app.models.base import AsyncSessionLocal, async_engine
        from app.services.evaluation_service import get_evaluation_client
    except Exception as exc:
        logger.error("Failed to import required modules: %s", exc)
        return 3

    async def run():
        try:
            return await reconcile_evaluations(
                session_factory=AsyncSessionLocal,
                client=get_evaluation_client(),
                stale_after=timedelta(minutes=settings.EVALUATION_STALE_PENDING_MINUTES),
                limit=args.limit,
            )
        finally:
            await async_engine.dispose()

    try:
        summary = asyncio.run(run())
    except DatabaseOperationError as exc:
        logger.error("Database error during reconciliation: %s", exc)
        return 1
    except Exception as exc:
        logger.error("Unexpected error during reconciliation: %s", exc)
        return 2

    logger.info(
        "Evaluation reconciliation: examined=%d completed=%d failed=%d",
        summary.examined,
        summary.completed,
        summary.failed,
    )

    heartbeat = {
        "type": "HEARTBEAT",
        "service": "evaluation_reconcile_cron",
        "examined": summary.examined,
        "completed": summary.completed,
        "failed": summary.failed,
        "finished_at": utc_now().isoformat(),
    }
    print(json.dumps(heartbeat), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
