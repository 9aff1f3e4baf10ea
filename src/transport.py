"""IRC transport adapter for Reddit IRC Bot."""

import functools
import queue
import ssl
import threading

import irc.client
import irc.connection

from .config import IrcConfig
from .logging_config import create_execution_logger


class TransportError(ConnectionError):
    """Reported on the error source when the IRC connection is lost."""


class IrcTransport:
    """Wraps an irc.client connection behind the operations the bot needs.

    Setup handlers (``set_password``, ``handle_join``, ``handle_nick_taken``,
    ``handle_ping_pong``) are registered once before the first ``start()``.
    Unexpected disconnects and failed connection attempts are pushed onto
    ``errors``; an explicit ``disconnect()`` is not reported.
    """

    def __init__(
        self,
        config: IrcConfig,
        reactor: irc.client.Reactor | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the transport without connecting.

        Args:
            config: IRC configuration
            reactor: Reactor to use, a new one by default
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.reactor = reactor or irc.client.Reactor()
        self.connection = self.reactor.server()
        self.errors: queue.Queue[Exception] = queue.Queue()
        self.logger = create_execution_logger("irc_transport", execution_id)
        self.password: str | None = None
        self._closing = False
        self._thread: threading.Thread | None = None

        self.reactor.add_global_handler("disconnect", self._on_disconnect)
        self.reactor.add_global_handler("error", self._on_error)

    def set_password(self, password: str | None) -> None:
        """Set the server password sent on connect."""
        self.password = password or None

    def handle_join(self, channels: list[str]) -> None:
        """Join channels every time the server welcomes us."""
        channels = list(channels)

        def on_welcome(connection, event):
            for channel in channels:
                connection.join(channel)
            self.logger.info("Joined channels", channels=channels)

        self.reactor.add_global_handler("welcome", on_welcome)

    def handle_nick_taken(self) -> None:
        """Retry with an underscore appended when the nickname is in use."""

        def on_nick_taken(connection, event):
            nick = connection.get_nickname() + "_"
            self.logger.warning("Nickname in use, trying another", nick=nick)
            connection.nick(nick)

        self.reactor.add_global_handler("nicknameinuse", on_nick_taken)

    def handle_ping_pong(self) -> None:
        """Send periodic keepalive pings.

        Server PINGs are answered by the reactor itself.
        """
        self.reactor.scheduler.execute_every(self.config.keepalive, self._keepalive)

    def _keepalive(self) -> None:
        if self.connection.is_connected():
            try:
                self.connection.ping("keep-alive")
            except irc.client.ServerNotConnectedError as e:
                self.logger.debug(f"Keepalive skipped: {e}")

    def _connect_factory(self) -> irc.connection.Factory:
        if not self.config.tls:
            return irc.connection.Factory()
        context = ssl.create_default_context()
        wrapper = functools.partial(
            context.wrap_socket, server_hostname=self.config.server
        )
        return irc.connection.Factory(wrapper=wrapper)

    def start(self) -> None:
        """Connect (or reconnect) to the server.

        A failed attempt is reported on ``errors`` rather than raised.
        """
        self.logger.info(
            "Connecting to irc",
            server=self.config.server,
            port=self.config.port,
            tls=self.config.tls,
        )
        # connect() drops any previous connection first; that is not an error
        self._closing = True
        try:
            with self.reactor.mutex:
                self.connection.connect(
                    self.config.server,
                    self.config.port,
                    self.config.nick,
                    password=self.password,
                    username=self.config.user,
                    ircname=self.config.user,
                    connect_factory=self._connect_factory(),
                )
        except irc.client.ServerConnectionError as e:
            self.logger.error(f"Could not connect to irc: {e}", error=str(e))
            self.errors.put(e)
        self._closing = False

        if self._thread is None:
            self._thread = threading.Thread(
                target=self.reactor.process_forever, name="irc-reactor", daemon=True
            )
            self._thread.start()

    def disconnect(self) -> None:
        """Close the connection without reporting an error."""
        self._closing = True
        with self.reactor.mutex:
            self.connection.disconnect("Restarting")

    def send_bulk(self, channels: list[str], message: str) -> None:
        """Send message to every channel.

        Raises:
            irc.client.ServerNotConnectedError: If the connection is down
        """
        with self.reactor.mutex:
            for channel in channels:
                self.connection.privmsg(channel, message)

    def _on_disconnect(self, connection, event) -> None:
        if self._closing:
            return
        reason = event.arguments[0] if event.arguments else "connection closed"
        self.logger.warning("Disconnected from irc", reason=reason)
        self.errors.put(TransportError(reason))

    def _on_error(self, connection, event) -> None:
        reason = event.target or " ".join(event.arguments)
        self.logger.error(f"Irc server error: {reason}", reason=reason)
