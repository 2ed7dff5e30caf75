"""
Tests for local/supervisor/supervisor.py.

Drives the supervisor with synthetic signal events and recording fake servers:
- boot (INIT -> RUNNING) and fatal start failures
- reload ordering and failure handling
- shutdown, absorbing TERMINATED state, and the run loop
"""

import logging
from unittest.mock import Mock

import pytest

from tests.conftest import FakeServerFactory
from xpanel.local.supervisor import (
    FatalServerError,
    ServerRegistry,
    SignalEvent,
    SignalQueue,
    Supervisor,
    SupervisorState,
)


def make_supervisor(journal, web_kwargs=None, sub_kwargs=None, events=None):
    web = FakeServerFactory("web", journal, **(web_kwargs or {}))
    sub = FakeServerFactory("sub", journal, **(sub_kwargs or {}))
    supervisor = Supervisor(web, sub, registry=ServerRegistry(), events=events or SignalQueue(), poll_interval=0.01)
    return supervisor, web, sub


# =============================================================================
# Boot
# =============================================================================


@pytest.mark.unit
class TestStart:

    def test_starts_both_servers_once_and_publishes(self, journal):
        supervisor, web, sub = make_supervisor(journal)

        supervisor.start()

        assert supervisor.state is SupervisorState.RUNNING
        assert journal == [("start", "web", 0), ("start", "sub", 0)]
        assert supervisor.registry.get_web_server() is web.built[0]
        assert supervisor.registry.get_sub_server() is sub.built[0]

    def test_web_start_failure_is_fatal_without_stop(self, journal):
        supervisor, web, sub = make_supervisor(journal, web_kwargs={"fail_start_on": {0}})

        with pytest.raises(FatalServerError) as exc_info:
            supervisor.start()

        assert exc_info.value.kind == "web"
        assert supervisor.state is SupervisorState.INIT
        assert journal == [("start", "web", 0)]
        assert sub.built == []
        assert supervisor.registry.get_web_server() is None

    def test_sub_start_failure_is_fatal_without_stop(self, journal):
        supervisor, web, sub = make_supervisor(journal, sub_kwargs={"fail_start_on": {0}})

        with pytest.raises(FatalServerError) as exc_info:
            supervisor.start()

        assert exc_info.value.kind == "sub"
        assert supervisor.state is SupervisorState.INIT
        assert not any(action == "stop" for action, _, _ in journal)
        assert supervisor.registry.get_sub_server() is None

    def test_factory_error_is_fatal(self, journal):
        def broken_factory():
            raise ValueError("bad settings")

        supervisor = Supervisor(broken_factory, FakeServerFactory("sub", journal))

        with pytest.raises(FatalServerError, match="bad settings"):
            supervisor.start()

    def test_cannot_start_twice(self, journal):
        supervisor, _, _ = make_supervisor(journal)
        supervisor.start()

        with pytest.raises(RuntimeError):
            supervisor.start()


# =============================================================================
# Reload
# =============================================================================


@pytest.mark.unit
class TestReload:

    def test_reload_stops_old_then_starts_new(self, journal):
        supervisor, web, sub = make_supervisor(journal)
        supervisor.start()
        journal.clear()

        state = supervisor.transition(SignalEvent.RELOAD)

        assert state is SupervisorState.RUNNING
        assert journal == [
            ("stop", "web", 0),
            ("stop", "sub", 0),
            ("start", "web", 1),
            ("start", "sub", 1),
        ]
        assert supervisor.reload_count == 1

    def test_reload_publishes_new_handles(self, journal):
        supervisor, web, sub = make_supervisor(journal)
        supervisor.start()

        supervisor.transition(SignalEvent.RELOAD)

        assert supervisor.registry.get_web_server() is web.built[1]
        assert supervisor.registry.get_sub_server() is sub.built[1]
        assert supervisor.web_server is web.built[1]

    def test_panel_is_handled_before_subscription(self, journal):
        supervisor, _, _ = make_supervisor(journal)
        supervisor.start()
        journal.clear()

        supervisor.transition(SignalEvent.RELOAD)

        assert journal.index(("stop", "web", 0)) < journal.index(("stop", "sub", 0))
        assert journal.index(("start", "web", 1)) < journal.index(("start", "sub", 1))
        assert journal.index(("stop", "web", 0)) < journal.index(("start", "web", 1))

    def test_stop_failure_is_logged_and_reload_continues(self, journal, caplog):
        supervisor, web, sub = make_supervisor(journal, web_kwargs={"fail_stop_on": {0}})
        supervisor.start()

        with caplog.at_level(logging.WARNING):
            state = supervisor.transition(SignalEvent.RELOAD)

        assert state is SupervisorState.RUNNING
        assert ("start", "sub", 1) in journal
        assert "Stop web server error" in caplog.text

    def test_start_failure_during_reload_is_fatal_without_rollback(self, journal):
        supervisor, web, sub = make_supervisor(journal, web_kwargs={"fail_start_on": {1}})
        supervisor.start()
        journal.clear()

        with pytest.raises(FatalServerError):
            supervisor.transition(SignalEvent.RELOAD)

        assert supervisor.state is SupervisorState.RELOADING
        assert journal == [("stop", "web", 0), ("stop", "sub", 0), ("start", "web", 1)]
        # the stopped generation is never started again
        assert journal.count(("start", "web", 0)) == 0
        assert sub.built[0].running is False

    def test_sub_start_failure_during_reload_keeps_new_panel_published(self, journal):
        supervisor, web, sub = make_supervisor(journal, sub_kwargs={"fail_start_on": {1}})
        supervisor.start()

        with pytest.raises(FatalServerError) as exc_info:
            supervisor.transition(SignalEvent.RELOAD)

        assert exc_info.value.kind == "sub"
        assert supervisor.registry.get_web_server() is web.built[1]


# =============================================================================
# Shutdown
# =============================================================================


@pytest.mark.unit
class TestShutdown:

    @pytest.mark.parametrize("event", [SignalEvent.TERMINATE, SignalEvent.OTHER])
    def test_terminating_events_stop_both(self, journal, event):
        supervisor, _, _ = make_supervisor(journal)
        supervisor.start()
        journal.clear()

        state = supervisor.transition(event)

        assert state is SupervisorState.TERMINATED
        assert journal == [("stop", "web", 0), ("stop", "sub", 0)]

    def test_stop_failure_on_shutdown_still_terminates(self, journal):
        supervisor, _, _ = make_supervisor(journal, sub_kwargs={"fail_stop_on": {0}})
        supervisor.start()

        assert supervisor.transition(SignalEvent.TERMINATE) is SupervisorState.TERMINATED

    def test_terminated_is_absorbing(self, journal):
        supervisor, _, _ = make_supervisor(journal)
        supervisor.start()
        supervisor.transition(SignalEvent.TERMINATE)
        journal.clear()

        assert supervisor.transition(SignalEvent.RELOAD) is SupervisorState.TERMINATED
        assert journal == []

    def test_transition_before_start_raises(self, journal):
        supervisor, _, _ = make_supervisor(journal)

        with pytest.raises(RuntimeError):
            supervisor.transition(SignalEvent.RELOAD)

    @pytest.mark.parametrize("reloads", [0, 1, 3])
    def test_every_generation_is_stopped_exactly_once(self, journal, reloads):
        supervisor, web, sub = make_supervisor(journal)
        supervisor.start()

        for _ in range(reloads):
            supervisor.transition(SignalEvent.RELOAD)
        supervisor.transition(SignalEvent.TERMINATE)

        for kind in ("web", "sub"):
            stops = [gen for action, k, gen in journal if action == "stop" and k == kind]
            assert stops == list(range(reloads + 1))


# =============================================================================
# Run Loop
# =============================================================================


@pytest.mark.unit
class TestRun:

    def test_processes_queued_events_until_terminated(self, journal):
        events = SignalQueue()
        events.put(SignalEvent.RELOAD)
        events.put(SignalEvent.RELOAD)
        events.put(SignalEvent.TERMINATE)
        supervisor, web, sub = make_supervisor(journal, events=events)

        supervisor.run()

        assert supervisor.state is SupervisorState.TERMINATED
        assert len(web.built) == 3
        assert len(sub.built) == 3
        assert journal[-2:] == [("stop", "web", 2), ("stop", "sub", 2)]

    def test_keyboard_interrupt_shuts_down(self, journal):
        events = Mock()
        events.get.side_effect = KeyboardInterrupt
        supervisor, _, _ = make_supervisor(journal, events=events)

        supervisor.run()

        assert supervisor.state is SupervisorState.TERMINATED
        assert journal[-2:] == [("stop", "web", 0), ("stop", "sub", 0)]

    def test_empty_polls_keep_waiting(self, journal):
        events = Mock()
        events.get.side_effect = [None, None, SignalEvent.TERMINATE]
        supervisor, _, _ = make_supervisor(journal, events=events)

        supervisor.run()

        assert events.get.call_count == 3
        assert supervisor.state is SupervisorState.TERMINATED

    def test_boot_failure_propagates_from_run(self, journal):
        supervisor, _, _ = make_supervisor(journal, web_kwargs={"fail_start_on": {0}})

        with pytest.raises(FatalServerError):
            supervisor.run()
        assert not any(action == "stop" for action, _, _ in journal)
