"""Transport supervision for Reddit IRC Bot."""

import queue
import threading
from collections.abc import Callable

from .logging_config import create_execution_logger

IDLE_POLL_SECONDS = 0.5


class TransportSupervisor:
    """Restarts the IRC transport whenever it reports an error.

    Each error leads to an explicit disconnect, a fixed cooldown and a single
    reconnect. There is no retry ceiling.
    """

    def __init__(
        self,
        transport,
        cooldown: float = 60.0,
        sleep: Callable[[float], None] | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the supervisor.

        Args:
            transport: Object exposing ``errors`` (a queue), ``disconnect()``
                and ``start()``
            cooldown: Seconds between disconnect and reconnect
            sleep: Blocking sleep for the cooldown; interruptible by stop()
                when not supplied
            execution_id: Execution ID for logging context
        """
        self.transport = transport
        self.cooldown = cooldown
        self._stop = threading.Event()
        self.sleep = sleep or self._stop.wait
        self.logger = create_execution_logger("transport_supervisor", execution_id)
        self.restarts = 0
        self._thread: threading.Thread | None = None

    def handle_error(self, error: Exception) -> None:
        """Disconnect, wait for the cooldown and reconnect."""
        self.logger.error(f"Irc error: {error}", error=str(error))
        try:
            self.transport.disconnect()
        except Exception as e:
            self.logger.exception(f"Disconnect failed: {e}", error=str(e))

        self.logger.info("Restarting irc", cooldown=self.cooldown)
        self.sleep(self.cooldown)
        if self._stop.is_set():
            return

        self.transport.start()
        self.restarts += 1

    def run(self) -> None:
        """Watch the transport error source until stop() is called."""
        while not self._stop.is_set():
            try:
                error = self.transport.errors.get(timeout=IDLE_POLL_SECONDS)
            except queue.Empty:
                continue
            try:
                self.handle_error(error)
            except Exception as e:
                self.logger.exception(
                    f"Transport restart failed: {e}", error=str(e)
                )
                # Retry the restart on the next pass
                self.transport.errors.put(e)

        self.logger.info("Transport supervisor stopped", restarts=self.restarts)

    def start(self) -> threading.Thread:
        """Run the supervisor in a daemon thread."""
        self._thread = threading.Thread(
            target=self.run, name="transport-supervisor", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Stop supervising; a pending reconnect is abandoned."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
