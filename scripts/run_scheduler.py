"""Run the scheduled sweeps without the web app.

Usage:
    python scripts/run_scheduler.py              # run until interrupted
    python scripts/run_scheduler.py --once payment_sweep
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.tutoring_center.tutoring_center.container import build_container
from src.tutoring_center.tutoring_center.main import configure_logging

logger = logging.getLogger("run_scheduler")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--once", metavar="JOB_ID", help="run one job immediately and exit")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    scheduler = container.scheduler_service

    if args.once:
        report = scheduler.run_now(args.once)
        print(json.dumps(report.as_dict(), indent=2))
        return 1 if report.errors else 0

    scheduler.start()
    try:
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("stopping")
    finally:
        scheduler.shutdown(wait=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
