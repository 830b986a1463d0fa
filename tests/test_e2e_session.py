"""Full client sessions through HttpTransport against an in-memory control server."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyrmbt import RmbtConfig, RmbtControlClient
from pyrmbt.exceptions import RmbtBootstrapError, RmbtDecodeError, RmbtServerError

BASE = "https://control.example/RMBTControlServer"


class _Response:
    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        if isinstance(body, bytes):
            self._body = body
        else:
            self._body = b"" if body is None else json.dumps(body).encode()

    async def read(self) -> bytes:
        return self._body

    async def __aenter__(self) -> _Response:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


@dataclass
class FakeControlServer:
    """Answers like the control server, keyed by the last URL path segment."""

    issued_uuid: str = "uuid-e2e"
    settings_status: int = 200
    settings_body: bytes | None = None
    calls: list[tuple[str, str]] = field(default_factory=list)
    bodies: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def request(self, method: str, url: str, *, data: str | None = None, **_: Any) -> _Response:
        self.calls.append((method, url))
        body = json.loads(data) if data else {}
        endpoint = url.rsplit("/", 1)[-1]
        self.bodies.setdefault(endpoint, []).append(body)
        handler = getattr(self, f"_{endpoint}", None)
        if handler is None:
            return _Response(404, {"error": [f"no route for {endpoint}"]})
        return handler(body)

    def _settings(self, body: dict[str, Any]) -> _Response:
        if self.settings_body is not None:
            return _Response(200, self.settings_body)
        if self.settings_status != 200:
            return _Response(self.settings_status, {"error": ["maintenance"]})
        entry = {
            "uuid": body.get("uuid") or self.issued_uuid,
            "qostesttype_desc": [{"test_type": "DNS", "name": "DNS"}],
            "urls": {"open_data_prefix": "https://opendata.example/"},
        }
        return _Response(200, {"settings": [entry], "error": []})

    def _news(self, body: dict[str, Any]) -> _Response:
        if body.get("uuid") != self.issued_uuid:
            return _Response(200, {"error": ["unknown client"]})
        return _Response(200, {"news": [{"uid": 1, "title": "Welcome", "text": "Hi"}], "error": []})

    def _history(self, body: dict[str, Any]) -> _Response:
        rows = [{"test_uuid": f"t-{i}", "open_test_uuid": f"O{i}"} for i in range(body["result_limit"])]
        return _Response(200, {"history": rows, "error": []})

    def _result(self, body: dict[str, Any]) -> _Response:
        return _Response(200, {"error": [], "test_uuid": body.get("test_uuid")})

    def _O1(self, _body: dict[str, Any]) -> _Response:
        return _Response(200, {"open_test_uuid": "O1", "speed_curve": {"download": [{"bytes_total": 5}]}})


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_bootstrap_then_reads_and_submit() -> None:
    server = FakeControlServer()

    async with RmbtControlClient(RmbtConfig(base_url=BASE), session=server) as client:  # type: ignore[arg-type]
        news = await client.get_news()
        page = await client.get_history(length=2)
        ack = await client.submit_result({"test_uuid": "t-0"})
        open_data = await client.get_history_open_data_result("O1")

    assert [item.title for item in news] == ["Welcome"]
    assert [item.test_uuid for item in page.items] == ["t-0", "t-1"]
    assert not page.is_last
    assert ack.test_uuid == "t-0"
    assert open_data.download_curve[0].bytes_total == 5

    assert server.calls[0] == ("POST", f"{BASE}/settings")
    assert server.calls.count(("POST", f"{BASE}/settings")) == 1
    assert server.calls[-1] == ("GET", "https://opendata.example/O1")
    assert server.bodies["result"][0]["client_uuid"] == "uuid-e2e"
    assert client.qos_test_names == {"DNS": "DNS"}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_server_maintenance_fails_bootstrap() -> None:
    server = FakeControlServer(settings_status=503)

    async with RmbtControlClient(RmbtConfig(base_url=BASE), session=server) as client:  # type: ignore[arg-type]
        with pytest.raises(RmbtBootstrapError) as exc_info:
            await client.get_news()

    cause = exc_info.value.cause
    assert isinstance(cause, RmbtServerError)
    assert cause.status_code == 503
    assert cause.errors == ["maintenance"]
    assert "news" not in server.bodies


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_unknown_client_error_list() -> None:
    server = FakeControlServer()
    config = RmbtConfig(base_url=BASE, client_uuid="stale-uuid")

    async with RmbtControlClient(config, session=server) as client:  # type: ignore[arg-type]
        with pytest.raises(RmbtServerError) as exc_info:
            await client.get_news()

    assert exc_info.value.errors == ["unknown client"]
    assert "settings" not in server.bodies


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_undecodable_settings_body_fails_bootstrap() -> None:
    server = FakeControlServer(settings_body=b'{"settings": [{"uuid": "\xff\xfe"}]}')

    async with RmbtControlClient(RmbtConfig(base_url=BASE), session=server) as client:  # type: ignore[arg-type]
        with pytest.raises(RmbtBootstrapError) as exc_info:
            await client.get_news()

    assert isinstance(exc_info.value.cause, RmbtDecodeError)
    assert client.uuid is None
    assert "news" not in server.bodies
