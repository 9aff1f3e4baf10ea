"""Rate-limited message delivery for Reddit IRC Bot."""

import queue
import threading
import time
from collections.abc import Callable

from .logging_config import create_execution_logger
from .models import OutboundMessage

# How often an idle worker checks whether it was stopped
IDLE_POLL_SECONDS = 0.5


def create_delivery_queue(maxsize: int = 100) -> queue.Queue:
    """Create the bounded FIFO buffer between the poller and the worker."""
    if maxsize <= 0:
        raise ValueError("Delivery queue must be bounded")
    return queue.Queue(maxsize=maxsize)


class DeliveryWorker:
    """Drains the delivery queue into IRC at a fixed pace."""

    def __init__(
        self,
        outbox: queue.Queue,
        transport,
        channels: list[str],
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        execution_id: str | None = None,
    ):
        """Initialize the delivery worker.

        Args:
            outbox: Queue of OutboundMessage filled by the poll engine
            transport: Object exposing ``send_bulk(channels, message)``
            channels: Channels every message is sent to
            delay: Pause after each message, in seconds
            sleep: Blocking sleep used for the pause
            execution_id: Execution ID for logging context
        """
        self.outbox = outbox
        self.transport = transport
        self.channels = list(channels)
        self.delay = delay
        self.sleep = sleep
        self.logger = create_execution_logger("delivery_worker", execution_id)
        self.sent = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def deliver(self, message: OutboundMessage) -> bool:
        """Hand a single message to the transport.

        Returns:
            True if the transport accepted the message, False otherwise
        """
        try:
            self.transport.send_bulk(self.channels, message.text)
        except Exception as e:
            self.logger.error(
                f"Failed to send message: {e}",
                endpoint=message.endpoint,
                error=str(e),
            )
            return False

        self.sent += 1
        self.logger.debug(
            "Message sent", endpoint=message.endpoint, channels=self.channels
        )
        return True

    def run(self) -> None:
        """Consume the queue until stop() is called."""
        self.logger.info("Delivery worker started", delay=self.delay)
        while not self._stop.is_set():
            try:
                message = self.outbox.get(timeout=IDLE_POLL_SECONDS)
            except queue.Empty:
                continue

            try:
                self.deliver(message)
            finally:
                self.outbox.task_done()
            self.sleep(self.delay)

        self.logger.info("Delivery worker stopped", messages_sent=self.sent)

    def start(self) -> threading.Thread:
        """Run the worker in a daemon thread."""
        self._thread = threading.Thread(
            target=self.run, name="delivery-worker", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker after the message in flight."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
