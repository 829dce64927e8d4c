import argparse
import asyncio
import signal
import sys
import traceback
from typing import List, Optional

from r2bot.bot import R2Bot
from r2bot.config import (
    load_amounts, load_loop_config, load_private_keys,
    load_settings, validate_settings
)
from r2bot.exceptions import SettingsError
from r2bot.logger import logger
from r2bot.proxy import ProxyRotator
from r2bot.scheduler import DailyScheduler
from r2bot.utils import create_data_directory


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="r2bot", description="Daily R2 testnet operations for a list of wallets")
    parser.add_argument("--settings", default="settings.yaml", help="path to settings.yaml")
    parser.add_argument("--once", action="store_true", help="run a single daily cycle and exit")
    return parser.parse_args(argv)


async def run_scheduler(scheduler: DailyScheduler, max_runs: Optional[int] = None):
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, scheduler.stop)
    except (NotImplementedError, AttributeError):
        logger.debug("SIGTERM handler not supported on this platform")

    if max_runs is None:
        logger.info("Scheduler is running. Press Ctrl+C to exit.")
    await scheduler.run_forever(max_runs)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    create_data_directory()

    try:
        settings = load_settings(args.settings)
        validate_settings(settings)
    except SettingsError as e:
        logger.error(f"Failed to load settings: {e}")
        sys.exit(1)

    logger.print_banner()

    private_keys = load_private_keys()
    if not private_keys:
        logger.error("Please set PRIVATE_KEY in your .env file with one or more private keys (comma separated)")
        sys.exit(1)

    files = settings['FILES']
    bot = R2Bot(
        settings,
        loops=load_loop_config(files['LOOPS']),
        amounts=load_amounts(files['AMOUNTS']),
        proxy_rotator=ProxyRotator(files['PROXIES']),
    )
    scheduler = DailyScheduler(
        lambda: bot.run_daily(private_keys),
        interval_hours=settings['SETTINGS'].get('RUN_INTERVAL_HOURS', 24),
    )

    try:
        asyncio.run(run_scheduler(scheduler, max_runs=1 if args.once else None))
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Shutting down scheduler...")
    except Exception as e:
        logger.error(f"Fatal error in scheduler: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
