"""Command line entry point for Reddit IRC Bot."""

import os
import signal
import sys

from .bot import Bot
from .config import Config
from .logging_config import create_execution_logger, setup_structured_logging


def main() -> int:
    """Load configuration and run the bot until interrupted."""
    setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger = create_execution_logger("main")

    try:
        bot = Bot(Config())
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}", error=str(e))
        return 1

    def shutdown(signum, frame):
        logger.warning(
            "Shutdown signal received", signal=signal.Signals(signum).name
        )
        bot.stop()

    signal.signal(signal.SIGTERM, shutdown)

    try:
        bot.start()
    except KeyboardInterrupt:
        bot.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
