"""
Worker entry point — runs the campaign worker pool.

Usage:
    python worker.py                   # CAMPAIGN_CONCURRENCY workers, runs until stopped
    python worker.py --concurrency 2   # override the pool size
    python worker.py --burst           # exit once the queue is empty
"""
import argparse
import logging

from campaign_bot.config import CAMPAIGN_CONCURRENCY, LOG_LEVEL
from campaign_bot.extensions import redis_client
from campaign_bot.logging_config import configure_logging
from campaign_bot.pipeline.worker import start_pool
from campaign_bot.services.circuit_breaker import init_breakers

logger = logging.getLogger('worker')


def main():
    parser = argparse.ArgumentParser(description='Run the email campaign worker pool')
    parser.add_argument('--concurrency', type=int, default=CAMPAIGN_CONCURRENCY,
                        help=f'Number of workers (default: {CAMPAIGN_CONCURRENCY})')
    parser.add_argument('--burst', action='store_true', help='Exit when the queue is empty')
    args = parser.parse_args()

    configure_logging()
    init_breakers(redis_client)

    if args.concurrency < 1:
        parser.error('--concurrency must be at least 1')

    logger.info("Starting worker pool (concurrency=%d, burst=%s)", args.concurrency, args.burst)
    start_pool(concurrency=args.concurrency, burst=args.burst, logging_level=LOG_LEVEL.upper())


if __name__ == '__main__':
    main()
