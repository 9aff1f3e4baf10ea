"""Start-up and wiring for Reddit IRC Bot."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime

from .config import Config
from .delivery import DeliveryWorker, create_delivery_queue
from .logging_config import create_execution_logger
from .poller import PollEngine
from .rss import FeedFetcher, FetchError
from .scheduler import Scheduler
from .supervisor import TransportSupervisor
from .transport import IrcTransport


class Bot:
    """Owns every component of a running bot."""

    def __init__(
        self,
        config: Config,
        transport=None,
        fetcher=None,
        sleep: Callable[[float], None] | None = None,
        execution_id: str | None = None,
    ):
        """Build the components from configuration.

        Args:
            config: Loaded configuration
            transport: IRC transport, built from config by default
            fetcher: Feed fetcher, built from config by default
            sleep: Blocking sleep used between bootstrap attempts; interruptible
                by stop() when not supplied
            execution_id: Execution ID for logging context
        """
        if not execution_id:
            execution_id = f"bot_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"

        self.execution_id = execution_id
        self.logger = create_execution_logger("main", execution_id)
        self._stop = threading.Event()
        self.sleep = sleep or self._stop.wait

        self.irc_config = config.get_irc_config()
        fetch_config = config.get_fetch_config()
        self.schedule_config = config.get_schedule_config()
        self.delivery_config = config.get_delivery_config()

        self.transport = transport or IrcTransport(
            self.irc_config, execution_id=execution_id
        )
        self.fetcher = fetcher or FeedFetcher(fetch_config, execution_id=execution_id)
        self.outbox = create_delivery_queue(self.delivery_config.queue_size)

        self.poller = PollEngine(
            fetch_config.endpoints,
            self.fetcher,
            self.outbox,
            self.delivery_config,
            execution_id=execution_id,
        )
        self.worker = DeliveryWorker(
            self.outbox,
            self.transport,
            self.irc_config.channels,
            delay=self.delivery_config.send_delay,
            execution_id=execution_id,
        )
        self.supervisor = TransportSupervisor(
            self.transport,
            cooldown=self.delivery_config.reconnect_cooldown,
            execution_id=execution_id,
        )
        self.scheduler = Scheduler(
            self.poller.get_posts,
            interval=self.schedule_config.interval,
            boundary=self.schedule_config.round,
            execution_id=execution_id,
        )

        self.logger.info(
            f"Bot configured with {len(fetch_config.endpoints)} endpoints",
            endpoint_count=len(fetch_config.endpoints),
            channels=self.irc_config.channels,
        )

    def connect(self) -> None:
        """Register transport handlers and open the first connection."""
        self.transport.set_password(self.irc_config.password)
        self.transport.handle_join(self.irc_config.channels)
        self.transport.handle_nick_taken()
        self.transport.handle_ping_pong()
        self.transport.start()

    def bootstrap(self) -> int | None:
        """Run the first cycle until it succeeds.

        Returns:
            The initial watermark, or None if stop() was called first
        """
        while not self._stop.is_set():
            try:
                watermark = self.poller.first_run()
            except FetchError as e:
                self.logger.error(
                    f"first run failed: {e}",
                    error=str(e),
                    retry_in=self.schedule_config.bootstrap_backoff,
                )
                self.sleep(self.schedule_config.bootstrap_backoff)
                if not self._stop.is_set():
                    self.logger.info("retrying first run")
                continue

            self.logger.info("first run succeeded", watermark=watermark)
            return watermark

        self.logger.info("Stopped before first run succeeded")
        return None

    def start(self) -> None:
        """Connect, bootstrap and poll forever."""
        self.connect()
        if self.bootstrap() is None:
            return
        self.worker.start()
        self.supervisor.start()
        self.scheduler.run()

    def stop(self) -> None:
        """Stop bootstrap, the scheduler and background threads.

        The poller is released first so that a cycle blocked on a full
        delivery queue returns and the scheduler can exit.
        """
        self._stop.set()
        self.poller.stop()
        self.scheduler.stop()
        self.supervisor.stop(timeout=5)
        self.worker.stop(timeout=5)
        self.logger.info("Bot stopped")
