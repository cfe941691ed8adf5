"""
Run one billing lifecycle pass directly against the configured database.

Usage:
  python scripts/run_billing_cron.py
  python scripts/run_billing_cron.py --now 2024-01-14T00:00:01+00:00
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime

from app.core.logger import configure_logging
from app.database import SessionLocal
from app.services.billing_lifecycle import SubscriptionLifecycleManager


async def run(now: datetime | None) -> int:
    db = SessionLocal()
    try:
        result = await SubscriptionLifecycleManager(db).run(now)
    finally:
        db.close()
    print(json.dumps(result.to_response(), indent=2))
    return 0 if result.success else 1


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--now", type=datetime.fromisoformat, default=None, help="ISO-8601 run time")
    args = parser.parse_args()
    configure_logging()
    sys.exit(asyncio.run(run(args.now)))


if __name__ == "__main__":
    main()
