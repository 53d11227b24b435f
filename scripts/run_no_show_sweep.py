"""Mark overdue appointments without a check-in as no-shows.

Intended to run from cron or a scheduler every few minutes. Each run handles at
most one batch; leftover candidates are picked up by the next run.
"""

import argparse
import asyncio
import sys
from datetime import datetime

import structlog
from dotenv import load_dotenv

load_dotenv()

from app.config import settings  # noqa: E402
from app.core.clock import Clock, FixedClock, SystemClock  # noqa: E402
from app.database import AsyncSessionLocal, engine  # noqa: E402
from app.middleware.logging import configure_logging  # noqa: E402
from app.services.scheduling_service import SchedulingService  # noqa: E402

logger = structlog.get_logger(__name__)


async def run_sweep(grace_minutes: int, batch_size: int, clock: Clock) -> int:
    """Run one sweep and return the number of appointments marked."""
    async with AsyncSessionLocal() as session:
        service = SchedulingService(session, clock=clock)
        result = await service.run_no_show_sweep(grace_minutes=grace_minutes, batch_size=batch_size)

    await engine.dispose()

    for warning in result.warnings:
        logger.warning("no_show_sweep_warning", warning=warning)
    print(f"Marked {len(result.marked)} appointment(s) as no-show: {result.marked}")
    return len(result.marked)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--grace-minutes", type=int, default=settings.no_show_grace_minutes)
    parser.add_argument("--batch-size", type=int, default=settings.no_show_batch_size)
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="evaluate the sweep as of this local time (ISO 8601), for backfills",
    )
    args = parser.parse_args()

    configure_logging()
    clock: Clock = FixedClock(args.now) if args.now else SystemClock()

    try:
        asyncio.run(run_sweep(args.grace_minutes, args.batch_size, clock))
    except Exception as e:
        logger.error("no_show_sweep_failed", error=str(e))
        print(f"✗ No-show sweep failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
