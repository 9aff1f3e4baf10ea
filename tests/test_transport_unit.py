"""Unit tests for the IRC transport adapter."""

import queue
from unittest.mock import MagicMock, Mock, patch

import irc.client
import pytest

from src.config import DeliveryConfig, IrcConfig
from src.models import FeedItem
from src.poller import PollEngine
from src.transport import IrcTransport, TransportError


class TestIrcTransportUnit:
    """Unit tests for IrcTransport with a mocked reactor."""

    def setup_method(self):
        self.config = IrcConfig(
            nick="bot", server="irc.example.org", channels=["#a", "#b"], tls=False
        )
        self.reactor = MagicMock()
        self.connection = self.reactor.server.return_value
        self.transport = IrcTransport(self.config, reactor=self.reactor)

    def handler(self, event_type):
        for call in self.reactor.add_global_handler.call_args_list:
            if call.args[0] == event_type:
                return call.args[1]
        raise AssertionError(f"No handler registered for {event_type}")

    def test_join_channels_on_welcome(self):
        self.transport.handle_join(["#a", "#b"])

        self.handler("welcome")(self.connection, Mock())

        assert [c.args for c in self.connection.join.call_args_list] == [("#a",), ("#b",)]

    def test_nick_taken_appends_underscore(self):
        self.connection.get_nickname.return_value = "bot"
        self.transport.handle_nick_taken()

        self.handler("nicknameinuse")(self.connection, Mock())

        self.connection.nick.assert_called_once_with("bot_")

    def test_keepalive_is_scheduled(self):
        self.transport.handle_ping_pong()

        self.reactor.scheduler.execute_every.assert_called_once_with(
            self.config.keepalive, self.transport._keepalive
        )

    def test_start_connects_with_password(self):
        self.transport.set_password("secret")

        with patch("src.transport.threading.Thread") as thread_class:
            self.transport.start()
            self.transport.start()

        args, kwargs = self.connection.connect.call_args
        assert args == ("irc.example.org", self.config.port, "bot")
        assert kwargs["password"] == "secret"
        assert kwargs["username"] == "bot"
        assert self.connection.connect.call_count == 2
        thread_class.return_value.start.assert_called_once_with()

    def test_failed_connect_is_reported(self):
        self.connection.connect.side_effect = irc.client.ServerConnectionError("refused")

        with patch("src.transport.threading.Thread"):
            self.transport.start()

        assert isinstance(self.transport.errors.get_nowait(), irc.client.ServerConnectionError)

    def test_unexpected_disconnect_is_reported(self):
        event = Mock(arguments=["Ping timeout"])

        self.handler("disconnect")(self.connection, event)

        error = self.transport.errors.get_nowait()
        assert isinstance(error, TransportError)
        assert "Ping timeout" in str(error)

    def test_explicit_disconnect_is_not_reported(self):
        self.transport.disconnect()
        self.handler("disconnect")(self.connection, Mock(arguments=["Restarting"]))

        self.connection.disconnect.assert_called_once_with("Restarting")
        assert self.transport.errors.empty()

    def test_send_bulk_messages_every_channel(self):
        self.transport.send_bulk(["#a", "#b"], "hello")

        assert [c.args for c in self.connection.privmsg.call_args_list] == [
            ("#a", "hello"),
            ("#b", "hello"),
        ]

    def test_send_bulk_while_disconnected_raises(self):
        self.connection.privmsg.side_effect = irc.client.ServerNotConnectedError("Not connected.")

        with pytest.raises(irc.client.ServerNotConnectedError):
            self.transport.send_bulk(["#a"], "hello")

    def test_shortened_message_reaches_the_socket(self):
        """A rendered long multibyte title is accepted by a real connection."""
        transport = IrcTransport(self.config)
        sock = Mock(spec=["send"])
        transport.connection.socket = sock
        outbox = queue.Queue()
        item = FeedItem(title="新" * 300, raw_id="t3_d", link="", endpoint="/r/a/new")
        engine = PollEngine(
            ["/r/a/new"],
            Mock(fetch=Mock(return_value=[item])),
            outbox,
            DeliveryConfig(channels=self.config.channels),
        )
        engine.watermark.set(12)
        engine.get_posts()

        transport.send_bulk(self.config.channels, outbox.get_nowait().text)

        lines = [call.args[0] for call in sock.send.call_args_list]
        assert len(lines) == 2
        assert all(len(line) <= 512 for line in lines)
        assert lines[0].startswith("PRIVMSG #a :[新".encode("utf-8"))
        assert lines[1].endswith(b"d https://redd.it/d\r\n")
