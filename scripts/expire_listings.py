import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import Config
from database.database import AsyncSessionLocal, init_db
from services.expiration import ExpirationSweep
from utils.logging_config import setup_logging


async def main() -> int:
    setup_logging(Config.from_env())

    print("=" * 80)
    print("LISTING EXPIRATION SWEEP")
    print("=" * 80)

    await init_db()

    sweep = ExpirationSweep(AsyncSessionLocal)
    report = await sweep.run_safely()
    if report is None:
        print("Sweep failed, see the log for details")
        return 1

    print(f"Stale listings found: {report.matched}")
    print(f"Marked expired:       {report.expired}")
    print(f"Failed updates:       {report.failed}")
    print("=" * 80)
    return 0 if not report.failed else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
