"""Tests for Dispatcher routing."""

import logging
from unittest.mock import MagicMock

import pytest

from ga_analytics.config import AnalyticsConfig
from ga_analytics.context import AnalyticsContext
from ga_analytics.dispatcher import Dispatcher
from ga_analytics.events import TransportState


def _dispatcher(measurement_id="G-TEST123", state=None):
    ctx = AnalyticsContext(AnalyticsConfig(measurement_id=measurement_id))
    if state is not None:
        ctx.transition(state)
    sender = MagicMock()
    return Dispatcher(ctx, sender), ctx, sender


class TestUnconfigured:
    def test_logs_only(self, caplog):
        dispatcher, ctx, sender = _dispatcher(measurement_id=None)

        with caplog.at_level(logging.INFO, logger="ga_analytics.dispatcher"):
            dispatcher.track_event("sign_up", {"method": "email"})

        assert "[ga-stub] sign_up {'method': 'email'}" in caplog.text
        sender.send.assert_not_called()
        assert len(ctx.buffer) == 0
        assert ctx.commands.queued == []


class TestPending:
    def test_buffers_and_records_command(self):
        dispatcher, ctx, sender = _dispatcher()

        dispatcher.track_event("view_pricing", {"plan_id": "pro"})
        dispatcher.track_event("login")

        assert [(e.name, e.params) for e in ctx.buffer] == [
            ("view_pricing", {"plan_id": "pro"}),
            ("login", {}),
        ]
        assert ctx.commands.queued == [
            ("event", "view_pricing", {"plan_id": "pro"}),
            ("event", "login", {}),
        ]
        sender.send.assert_not_called()


class TestFailed:
    def test_sends_via_fallback_without_buffering(self):
        dispatcher, ctx, sender = _dispatcher(state=TransportState.FAILED)

        dispatcher.track_event("purchase", {"value": 29, "currency": "USD"})

        sender.send.assert_called_once_with(
            "purchase", {"value": 29, "currency": "USD"}
        )
        assert len(ctx.buffer) == 0


class TestReady:
    def test_forwards_to_backend(self):
        dispatcher, ctx, sender = _dispatcher(state=TransportState.READY)
        backend = MagicMock()
        ctx.commands.attach(backend)

        dispatcher.track_event("select_plan", {"plan_id": "free"})

        backend.assert_called_once_with("event", "select_plan", {"plan_id": "free"})
        assert len(ctx.buffer) == 0
        sender.send.assert_not_called()


class TestNeverRaises:
    @pytest.mark.parametrize("name", ["", None, 7])
    def test_invalid_name_ignored(self, name, caplog):
        dispatcher, ctx, sender = _dispatcher()

        dispatcher.track_event(name)

        assert len(ctx.buffer) == 0
        assert "invalid name" in caplog.text

    def test_sender_error_absorbed(self, caplog):
        dispatcher, ctx, sender = _dispatcher(state=TransportState.FAILED)
        sender.send.side_effect = RuntimeError("boom")

        dispatcher.track_event("login")

        assert "Failed to track event 'login'" in caplog.text

    def test_bad_params_absorbed(self):
        dispatcher, ctx, sender = _dispatcher()

        dispatcher.track_event("login", params=42)  # not a mapping

        assert len(ctx.buffer) == 0
