"""Run the match job processor outside Celery, polling on a fixed interval"""
import argparse
import logging
import time
from collectibles.config import get_settings
from collectibles.services.job_processor import MatchJobProcessor


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Drain the wishlist match job queue")
    parser.add_argument("--once", action="store_true", help="run a single poll cycle and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.match_poll_interval_seconds,
        help="seconds between poll cycles",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)
    logger = logging.getLogger("match_poller")

    processor = MatchJobProcessor()
    logger.info(f"Polling {settings.matcher_url} as {processor.worker_id}")

    while True:
        stats = processor.process_jobs()
        if args.once:
            print(
                f"Claimed {stats['claimed']}: {stats['completed']} completed, "
                f"{stats['failed']} failed, {stats['dead']} dead"
            )
            return
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
