from __future__ import annotations

from typing import Any

import pytest
from _fakes import FakeTransport, settings_payload

from pyrmbt import InvocationState, RmbtControlClient
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.exceptions import RmbtDecodeError, RmbtServerError
from pyrmbt.store import SettingsStore

# ------------------------------------------------------------------
# QoS
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_qos_params_echo_identity_and_accept_empty_descriptor_list(config: RmbtConfig) -> None:
    transport = FakeTransport(
        {
            "settings": {"settings": [{"uuid": "abc", "qostesttype_desc": [{"test_type": "WEBSITE", "name": "Web page"}]}]},
            "qosTestRequest": {"objectives": {}, "test_token": "qtok", "error": []},
        }
    )

    async with RmbtControlClient(config, transport=transport) as client:
        params = await client.get_qos_params()

    assert client.qos_test_names == {"WEBSITE": "Web page"}
    assert transport.bodies("qosTestRequest")[0]["uuid"] == "abc"
    assert params.tests == []
    assert params.test_token == "qtok"


@pytest.mark.asyncio
async def test_qos_params_flatten_objectives(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["qosTestRequest"] = {
        "objectives": {
            "WEBSITE": [{"url": "https://a.example"}, {"url": "https://b.example"}],
            "DNS": [{"host": "example.org", "record": "A"}],
        }
    }

    async with RmbtControlClient(config, transport=transport) as client:
        params = await client.get_qos_params()

    assert len(params.tests) == 3
    assert params.kinds == {"WEBSITE", "DNS"}
    assert params.tests[0].params == {"url": "https://a.example"}


# ------------------------------------------------------------------
# Test parameters
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_test_params_are_handed_to_caller_without_touching_settings(
    config: RmbtConfig, transport: FakeTransport
) -> None:
    transport.responses["testRequest"] = {
        "test_token": "tok",
        "test_uuid": "t-1",
        "test_server_address": "ms.example",
        "test_server_port": "443",
        "test_numthreads": 5,
        "result_qos_url": "https://qos.example/collect",
        "error": [],
    }

    async with RmbtControlClient(config, transport=transport) as client:
        await client.get_settings()
        snapshot = client.store.snapshot
        params = await client.get_test_params({"ndt": False}, test_counter=7, previous_test_status="ABORTED")

    assert client.store.snapshot is snapshot
    assert params.test_server_port == 443
    assert params.test_numthreads == 5
    assert params.result_qos_url == "https://qos.example/collect"
    body = transport.bodies("testRequest")[0]
    assert body["ndt"] is False
    assert body["testCounter"] == 7
    assert body["previousTestStatus"] == "ABORTED"


@pytest.mark.asyncio
async def test_test_params_missing_fields_is_decode_failure(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["testRequest"] = {"test_token": "tok"}

    async with RmbtControlClient(config, transport=transport) as client:
        with pytest.raises(RmbtDecodeError):
            await client.get_test_params()


# ------------------------------------------------------------------
# Submission
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_submit_without_endpoint_posts_to_default_results_endpoint(
    config: RmbtConfig, transport: FakeTransport
) -> None:
    async with RmbtControlClient(config, transport=transport) as client:
        ack = await client.submit_result({"test_token": "tok", "test_speed_download": 12000})

    spec, base_url = transport.calls[-1]
    assert transport.endpoints == ["settings", "result"]
    assert spec.url is None
    assert spec.resolve_url(base_url) == "https://control.example/RMBTControlServer/result"
    assert spec.body is not None
    assert spec.body["client_uuid"] == "abc"
    assert spec.body["test_speed_download"] == 12000
    assert ack.endpoint == "result"


@pytest.mark.asyncio
async def test_submit_with_endpoint_posts_to_literal_url(config: RmbtConfig, transport: FakeTransport) -> None:
    qos_url = "https://qos.example/collect"
    transport.responses[qos_url] = {"error": []}

    async with RmbtControlClient(config, transport=transport) as client:
        ack = await client.submit_result({"qos_result": []}, qos_url)

    spec, base_url = transport.calls[-1]
    assert transport.endpoints == ["settings", qos_url]
    assert spec.resolve_url(base_url) == qos_url
    assert spec.body is not None
    assert spec.body["client_uuid"] == "abc"
    assert ack.endpoint == qos_url


@pytest.mark.asyncio
async def test_submit_keeps_caller_client_uuid_and_surfaces_failures(transport: FakeTransport) -> None:
    transport.responses["result"] = RmbtServerError("HTTP 500", status_code=500, endpoint="result")

    async with RmbtControlClient(RmbtConfig(client_uuid="mine"), transport=transport) as client:
        with pytest.raises(RmbtServerError):
            await client.submit_result({"client_uuid": "other"})

    assert transport.bodies("result")[0]["client_uuid"] == "other"


@pytest.mark.asyncio
async def test_submit_passes_acceptable_status_codes(transport: FakeTransport) -> None:
    async with RmbtControlClient(RmbtConfig(client_uuid="mine"), transport=transport) as client:
        await client.submit_result({"fences": []}, acceptable_status_codes=[200, 409])

    spec, _ = transport.calls[-1]
    assert spec.accepted_status_codes == frozenset({200, 409})


@pytest.mark.asyncio
async def test_accepted_submit_with_odd_echo_still_succeeds(config: RmbtConfig, transport: FakeTransport) -> None:
    qos_url = "https://qos.example/collect"
    transport.responses[qos_url] = {"error": [], "test_uuid": 42, "open_test_uuid": "O7"}

    async with RmbtControlClient(config, transport=transport) as client:
        ack = await client.submit_result({"qos_result": []}, qos_url)

    assert ack.test_uuid is None
    assert ack.open_test_uuid == "O7"
    assert ack.raw["test_uuid"] == 42
    assert transport.endpoints.count(qos_url) == 1


@pytest.mark.asyncio
async def test_uncategorized_failure_still_ends_in_failed_state(transport: FakeTransport) -> None:
    transport.responses["news"] = RuntimeError("boom")
    seen: list[InvocationState] = []

    async with RmbtControlClient(
        RmbtConfig(client_uuid="mine"),
        transport=transport,
        on_state_change=lambda name, state: seen.append(state),
    ) as client:
        with pytest.raises(RuntimeError):
            await client.get_news()

    assert seen == [InvocationState.DISPATCHED, InvocationState.FAILED]


# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_history_pages_are_never_cached(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["history"] = {"history": [{"test_uuid": "t-1", "qos_result_available": True}]}

    async with RmbtControlClient(config, transport=transport) as client:
        first = await client.get_history({}, length=20, offset=0)
        second = await client.get_history({}, length=20, offset=20)
        again = await client.get_history({}, length=20, offset=0)

    assert transport.endpoints == ["settings", "history", "history", "history"]
    offsets = [body["result_offset"] for body in transport.bodies("history")]
    assert offsets == [0, 20, 0]
    assert all(body["result_limit"] == 20 for body in transport.bodies("history"))
    assert first.items[0].test_uuid == "t-1"
    assert first.items[0].qos_result_available is True
    assert first.is_last
    assert second.offset == 20
    assert again is not first


@pytest.mark.asyncio
async def test_history_filters_are_sent_as_lists(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["history"] = {"history": []}

    async with RmbtControlClient(config, transport=transport) as client:
        await client.get_history({"networks": ["WLAN"], "devices": "iPhone"}, length=10, offset=0)

    body = transport.bodies("history")[0]
    assert body["networks"] == ["WLAN"]
    assert body["devices"] == ["iPhone"]


@pytest.mark.asyncio
async def test_history_rejects_bad_window(config: RmbtConfig, transport: FakeTransport) -> None:
    async with RmbtControlClient(config, transport=transport) as client:
        with pytest.raises(ValueError):
            await client.get_history(length=0)
        with pytest.raises(ValueError):
            await client.get_history(offset=-1)

    assert transport.endpoints == []


@pytest.mark.asyncio
async def test_history_result_uses_detail_endpoint_when_requested(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["testresult"] = {
        "testresult": [{"open_test_uuid": "O-1", "time_string": "today", "measurement": [{"title": "Down"}]}]
    }
    transport.responses["testresultdetail"] = {"testresultdetail": [{"title": "Ping", "value": "12 ms"}]}

    async with RmbtControlClient(config, transport=transport) as client:
        summary = await client.get_history_result("t-1")
        detail = await client.get_history_result("t-1", full_details=True)

    assert transport.endpoints[1:] == ["testresult", "testresultdetail"]
    assert all(b["test_uuid"] == "t-1" for b in transport.bodies("testresult"))
    assert summary.open_test_uuid == "O-1"
    assert summary.measurement == [{"title": "Down"}]
    assert summary.full_details is False
    assert detail.full_details is True
    assert detail.details == [{"title": "Ping", "value": "12 ms"}]


@pytest.mark.asyncio
async def test_history_qos_result(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["qosTestResult"] = {
        "testresultdetail": [{"failure_count": 0}, {"failure_count": 2}],
        "testresultdetail_desc": [],
    }

    async with RmbtControlClient(config, transport=transport) as client:
        result = await client.get_history_qos_result("t-1")

    assert result.success_count == 1
    assert transport.bodies("qosTestResult")[0]["test_uuid"] == "t-1"


@pytest.mark.asyncio
async def test_open_data_result_uses_open_test_prefix(config: RmbtConfig, transport: FakeTransport) -> None:
    url = "https://opendata.example/opentests/O-1"
    transport.responses[url] = {
        "speed_curve": {
            "download": [{"bytes_total": 1000, "time_elapsed": 10}],
            "ping": [{"ping_ms": 12.5, "time_elapsed": 3}],
        },
        "signal_strength": -70,
        "fences": [{"fence_id": "f1", "technology_id": 13, "avg_ping_ms": 20}],
    }

    async with RmbtControlClient(config, transport=transport) as client:
        result = await client.get_history_open_data_result("O-1")

    spec, _ = transport.calls[-1]
    assert spec.method == "GET"
    assert spec.body is None
    assert result.open_test_uuid == "O-1"
    assert result.download_curve[0].bytes_total == 1000
    assert result.upload_curve == []
    assert result.ping_curve[0].ping_ms == 12.5
    assert result.fences[0].technology_id == 13


# ------------------------------------------------------------------
# News, roaming, IP
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_news_tracks_last_uid(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["news"] = {"news": [{"uid": 4, "title": "Hi", "text": "t"}, {"uid": 9, "title": "Yo"}]}

    async with RmbtControlClient(config, transport=transport) as client:
        news = await client.get_news()
        transport.responses["news"] = {"news": []}
        assert await client.get_news() == []

    assert [n.uid for n in news] == [4, 9]
    assert [b["lastNewsUid"] for b in transport.bodies("news")] == [0, 9]


@pytest.mark.asyncio
async def test_roaming_status(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["status"] = {"home_country": False}

    async with RmbtControlClient(config, transport=transport) as client:
        assert await client.get_roaming_status({"network_type": 13}) is True
        transport.responses["status"] = {"home_country": True}
        assert await client.get_roaming_status() is False
        transport.responses["status"] = {}
        with pytest.raises(RmbtDecodeError):
            await client.get_roaming_status()

    assert transport.bodies("status")[0]["network_type"] == 13


@pytest.mark.asyncio
async def test_get_ip_prefers_advertised_check_url(config: RmbtConfig, transport: FakeTransport) -> None:
    transport.responses["https://v4.example/ip"] = {"ip": "192.0.2.1", "v": "4"}
    transport.responses["https://c01v6.netztest.at/RMBTControlServer/ip"] = {"ip": "2001:db8::1", "v": "6"}

    async with RmbtControlClient(config, transport=transport) as client:
        v4 = await client.get_ip(4)
        v6 = await client.get_ip(6)
        with pytest.raises(ValueError):
            await client.get_ip(5)

    assert v4.ip == "192.0.2.1"
    assert v6.ip == "2001:db8::1"


# ------------------------------------------------------------------
# Sync
# ------------------------------------------------------------------


class _SyncServer:
    """Shared server state for two clients with their own identities."""

    def __init__(self) -> None:
        self._issued = 0
        self._codes: dict[str, str] = {}

    def transport_for(self, uuid: str) -> FakeTransport:
        return FakeTransport({"settings": settings_payload(uuid=uuid), "sync": self._sync})

    def _sync(self, spec: RequestSpec) -> dict[str, Any]:
        body = dict(spec.body or {})
        code = body.get("sync_code")
        if code is None:
            self._issued += 1
            issued = f"CODE{self._issued}"
            self._codes[issued] = str(body["uuid"])
            return {"sync": [{"sync_code": issued}], "error": []}
        owner = self._codes.pop(code, None)
        if owner is None:
            return {"sync": [{"success": False, "msg_title": "Invalid code"}], "error": []}
        return {"sync": [{"success": True, "uuid": owner, "msg_title": "Synced"}], "error": []}


@pytest.mark.asyncio
async def test_sync_code_round_trip_adopts_first_identity(config: RmbtConfig) -> None:
    server = _SyncServer()
    first = RmbtControlClient(config, transport=server.transport_for("uuid-first"), store=SettingsStore(config))
    second = RmbtControlClient(config, transport=server.transport_for("uuid-second"), store=SettingsStore(config))

    async with first, second:
        await second.get_settings()
        assert second.uuid == "uuid-second"

        code = await first.get_sync_code()
        outcome = await second.sync_with_code(code.sync_code)

    assert outcome.success is True
    assert first.uuid == "uuid-first"
    assert second.uuid == "uuid-first"


@pytest.mark.asyncio
async def test_failed_sync_keeps_identity(config: RmbtConfig) -> None:
    server = _SyncServer()

    async with RmbtControlClient(config, transport=server.transport_for("uuid-mine")) as client:
        outcome = await client.sync_with_code("NOPE")
        with pytest.raises(ValueError):
            await client.sync_with_code("   ")

    assert outcome.success is False
    assert client.uuid == "uuid-mine"
