"""
Keep a hosted database awake by pinging it on an interval.

Free-tier hosted databases suspend after a period without traffic. Run this
next to the API to keep the connection warm.

Usage:
    python scripts/keep_alive.py [interval_seconds]
"""
import sys
import os
import time
import logging

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError

from memorymatch.database import engine, ping_db

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger("keep_alive")

DEFAULT_INTERVAL_SECONDS = 300


def ping_once() -> bool:
    try:
        ping_db()
    except SQLAlchemyError as e:
        logger.error(f"Ping failed: {e}")
        return False
    logger.info("Pinged database")
    return True


def main():
    interval = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_INTERVAL_SECONDS
    logger.info(
        f"Keeping {engine.url.render_as_string(hide_password=True)} alive "
        f"every {interval} seconds"
    )
    try:
        while True:
            ping_once()
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
