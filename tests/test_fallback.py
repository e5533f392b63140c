"""Tests for fallback encoding and FallbackSender."""

from unittest.mock import MagicMock
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from ga_analytics.config import AnalyticsConfig
from ga_analytics.events import PendingEvent
from ga_analytics.fallback import (
    FallbackSender,
    build_collect_url,
    encode_event_query,
)
from ga_analytics.storage import ClientIdProvider, MemoryKeyValueStore

CONFIG = AnalyticsConfig(measurement_id="G-TEST123")


def _client_ids():
    store = MemoryKeyValueStore({CONFIG.client_id_key: "555.666"})
    return ClientIdProvider(store, CONFIG.client_id_key)


def _recording_client(requests, status_code=204):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _query(url):
    return parse_qsl(urlsplit(str(url)).query)


class TestEncodeEventQuery:
    def test_required_fields_first(self):
        pairs = encode_event_query("G-1", "cid.1", "login")
        assert pairs == [("v", "2"), ("tid", "G-1"), ("cid", "cid.1"), ("en", "login")]

    def test_numeric_param_prefix(self):
        pairs = encode_event_query("G-1", "c", "purchase", {"count": 3})
        assert ("epn.count", "3") in pairs

    def test_string_param_prefix(self):
        pairs = encode_event_query("G-1", "c", "sign_up", {"method": "email"})
        assert ("ep.method", "email") in pairs

    def test_bool_is_string_typed(self):
        pairs = encode_event_query("G-1", "c", "feature_use", {"logged_in": True})
        assert ("ep.logged_in", "true") in pairs

    def test_float_param(self):
        pairs = encode_event_query("G-1", "c", "purchase", {"value": 19.5})
        assert ("epn.value", "19.5") in pairs

    def test_absent_value_omitted(self):
        pairs = encode_event_query("G-1", "c", "sign_up", {"method": None})
        assert not any("method" in key for key, _ in pairs)

    def test_query_string_rendering(self):
        url = build_collect_url(
            "https://collect.example.com/g/collect",
            encode_event_query("G-1", "c", "sign_up", {"method": "email", "count": 3}),
        )
        assert "ep.method=email" in url
        assert "epn.count=3" in url
        assert url.startswith("https://collect.example.com/g/collect?v=2&")


class TestFallbackSender:
    async def test_send_issues_get(self):
        requests = []
        sender = FallbackSender(CONFIG, _client_ids(), client=_recording_client(requests))

        sender.send("sign_up", {"method": "email", "plan_id": None})
        await sender.drain_pending()

        assert len(requests) == 1
        assert requests[0].method == "GET"
        query = dict(_query(requests[0].url))
        assert query["tid"] == "G-TEST123"
        assert query["cid"] == "555.666"
        assert query["en"] == "sign_up"
        assert query["ep.method"] == "email"
        assert "ep.plan_id" not in query

    async def test_beacon_preferred(self):
        requests = []
        beacon = MagicMock(return_value=True)
        sender = FallbackSender(
            CONFIG, _client_ids(), client=_recording_client(requests), beacon=beacon
        )

        sender.send("login")
        await sender.drain_pending()

        beacon.assert_called_once()
        assert "en=login" in beacon.call_args.args[0]
        assert requests == []

    async def test_beacon_refusal_falls_back_to_http(self):
        requests = []
        beacon = MagicMock(return_value=False)
        sender = FallbackSender(
            CONFIG, _client_ids(), client=_recording_client(requests), beacon=beacon
        )

        sender.send("login")
        await sender.drain_pending()

        assert len(requests) == 1

    async def test_beacon_error_falls_back_to_http(self):
        requests = []
        beacon = MagicMock(side_effect=RuntimeError("unload"))
        sender = FallbackSender(
            CONFIG, _client_ids(), client=_recording_client(requests), beacon=beacon
        )

        sender.send("login")
        await sender.drain_pending()

        assert len(requests) == 1

    async def test_network_failure_is_swallowed(self, caplog):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        sender = FallbackSender(CONFIG, _client_ids(), client=client)

        sender.send("login")
        await sender.drain_pending()

        assert "Fallback send failed for login" in caplog.text
        assert sender.in_flight == 0

    async def test_http_error_status_is_not_an_error(self, caplog):
        requests = []
        sender = FallbackSender(
            CONFIG, _client_ids(), client=_recording_client(requests, 500)
        )

        sender.send("login")
        await sender.drain_pending()

        assert len(requests) == 1
        assert "failed" not in caplog.text

    async def test_flush_preserves_order(self):
        requests = []
        sender = FallbackSender(CONFIG, _client_ids(), client=_recording_client(requests))

        count = sender.flush([PendingEvent("a"), PendingEvent("b"), PendingEvent("c")])
        await sender.drain_pending()

        assert count == 3
        assert [dict(_query(r.url))["en"] for r in requests] == ["a", "b", "c"]

    def test_send_without_loop_is_dropped(self, caplog):
        sender = FallbackSender(CONFIG, _client_ids(), client=MagicMock())

        sender.send("login")

        assert "No running event loop" in caplog.text

    async def test_close_keeps_injected_client_open(self):
        client = _recording_client([])
        sender = FallbackSender(CONFIG, _client_ids(), client=client)

        await sender.close()

        assert not client.is_closed
        await client.aclose()

    async def test_close_releases_owned_client(self):
        sender = FallbackSender(CONFIG, _client_ids())
        client = sender._get_client()

        await sender.close()

        assert client.is_closed


@pytest.mark.parametrize(
    "params,expected",
    [
        ({"count": 3}, ("epn.count", "3")),
        ({"method": "email"}, ("ep.method", "email")),
        ({"logged_in": False}, ("ep.logged_in", "false")),
    ],
)
def test_param_typing(params, expected):
    assert expected in encode_event_query("G-1", "c", "e", params)


def test_collect_url_escapes_values():
    url = build_collect_url(
        "https://collect.example.com/g/collect",
        [("en", "sign_up"), ("ep.note", "a&b")],
    )

    assert url.startswith("https://collect.example.com/g/collect?en=sign_up&")
    assert dict(_query(url))["ep.note"] == "a&b"
