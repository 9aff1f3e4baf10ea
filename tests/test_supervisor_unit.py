"""Unit tests for the transport supervisor."""

import queue
from unittest.mock import Mock

from src.supervisor import TransportSupervisor


class TestTransportSupervisorUnit:
    """Unit tests for TransportSupervisor."""

    def setup_method(self):
        self.transport = Mock()
        self.transport.errors = queue.Queue()

    def test_error_triggers_disconnect_cooldown_then_reconnect(self):
        events = []
        self.transport.disconnect.side_effect = lambda: events.append("disconnect")

        def sleep(seconds):
            events.append(("sleep", seconds))
            assert self.transport.start.call_count == 0

        supervisor = TransportSupervisor(self.transport, cooldown=60, sleep=sleep)
        self.transport.start.side_effect = lambda: (events.append("start"), supervisor.stop())
        self.transport.errors.put(ConnectionError("connection reset"))

        supervisor.run()

        assert events == ["disconnect", ("sleep", 60), "start"]
        self.transport.disconnect.assert_called_once_with()
        self.transport.start.assert_called_once_with()
        assert supervisor.restarts == 1

    def test_every_error_is_handled(self):
        supervisor = TransportSupervisor(self.transport, cooldown=0, sleep=lambda s: None)
        for _ in range(3):
            self.transport.errors.put(ConnectionError("lost"))

        for _ in range(3):
            supervisor.handle_error(self.transport.errors.get_nowait())

        assert self.transport.disconnect.call_count == 3
        assert self.transport.start.call_count == 3

    def test_stop_during_cooldown_skips_reconnect(self):
        supervisor = TransportSupervisor(self.transport, cooldown=60)
        supervisor.stop()

        supervisor.handle_error(ConnectionError("lost"))

        self.transport.disconnect.assert_called_once_with()
        self.transport.start.assert_not_called()

    def test_supervisor_thread_stops(self):
        supervisor = TransportSupervisor(self.transport, cooldown=0)
        thread = supervisor.start()

        supervisor.stop(timeout=2)

        assert not thread.is_alive()
        self.transport.disconnect.assert_not_called()

    def test_failed_disconnect_still_reconnects_after_cooldown(self):
        sleeps = []
        self.transport.disconnect.side_effect = RuntimeError("socket already closed")
        supervisor = TransportSupervisor(self.transport, cooldown=60, sleep=sleeps.append)

        supervisor.handle_error(ConnectionError("lost"))

        assert sleeps == [60]
        self.transport.start.assert_called_once_with()

    def test_failed_restart_is_retried(self):
        sleeps = []
        supervisor = TransportSupervisor(self.transport, cooldown=60, sleep=sleeps.append)
        attempts = []

        def start():
            attempts.append(1)
            if len(attempts) == 1:
                raise OSError("network unreachable")
            supervisor.stop()

        self.transport.start.side_effect = start
        self.transport.errors.put(ConnectionError("lost"))

        supervisor.run()

        assert len(attempts) == 2
        assert sleeps == [60, 60]
        assert self.transport.disconnect.call_count == 2
        assert supervisor.restarts == 1
