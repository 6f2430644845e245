"""Tests for security audit events."""

import logging

import pytest

from caaspay.http.headers import Headers
from caaspay.http.request import Request
from caaspay.security.audit import SecurityEvent, emit_security_event, set_security_event_sink


def test_emit_without_sink_is_noop() -> None:
    set_security_event_sink(None)
    emit_security_event("auth.test")


def test_event_fields() -> None:
    events: list[SecurityEvent] = []
    set_security_event_sink(events.append)
    try:
        request = Request(method="GET", path="/accounts/1", headers=Headers())
        emit_security_event(
            "authz.denied",
            request=request,
            caller_id="svc-b",
            snapshot_version=3,
            details={"reason": "bad_secret"},
        )
    finally:
        set_security_event_sink(None)

    (event,) = events
    assert event.name == "authz.denied"
    assert event.method == "GET"
    assert event.path == "/accounts/1"
    assert event.caller_id == "svc-b"
    assert event.snapshot_version == 3
    assert event.details == {"reason": "bad_secret"}
    assert event.timestamp > 0


def test_events_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="caaspay.security"):
        emit_security_event("auth.credentials.missing", caller_id=None, snapshot_version=1)
    assert "auth.credentials.missing caller=- - - v1" in caplog.text
