"""High-level async client for the RMBT control server."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

import aiohttp

from pyrmbt._api import history as _history_api
from pyrmbt._api import news as _news_api
from pyrmbt._api import settings as _settings_api
from pyrmbt._api import submit as _submit_api
from pyrmbt._api import sync as _sync_api
from pyrmbt._api import test_params as _test_params_api
from pyrmbt._api._invocation import Invocation, StateListener
from pyrmbt._constants import ENDPOINT_IP, ENDPOINT_RESULT, ENDPOINT_SETTINGS
from pyrmbt._requests import RequestRegistry
from pyrmbt._transport import HttpTransport, RequestSpec, Transport
from pyrmbt.config import RmbtConfig
from pyrmbt.exceptions import (
    RmbtBootstrapError,
    RmbtCancelledError,
    RmbtDecodeError,
    RmbtError,
)
from pyrmbt.models.history import HistoryPage, HistoryResult, OpenDataResult, QosResult
from pyrmbt.models.news import NewsItem
from pyrmbt.models.qos import QosParams
from pyrmbt.models.settings import SettingsSnapshot
from pyrmbt.models.submit import IpInfo, SubmitAck
from pyrmbt.models.sync import SyncCode, SyncOutcome
from pyrmbt.models.test_params import TestParams
from pyrmbt.store import SettingsStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RmbtControlClient:
    """Async client for the RMBT control server.

    Usage::

        async with RmbtControlClient(RmbtConfig()) as client:
            params = await client.get_test_params(test_counter=1)

    Every operation except :meth:`get_settings` needs a client UUID. When
    none is held yet the settings are fetched first; concurrent operations
    share that single fetch.
    """

    def __init__(
        self,
        config: RmbtConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: SettingsStore | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self._config = config or RmbtConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._owns_transport = transport is None
        self._registry: RequestRegistry | None = None
        self._store = store or SettingsStore(self._config)
        self._bootstrap_task: asyncio.Task[SettingsSnapshot] | None = None
        self._on_state_change = on_state_change

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RmbtControlClient:
        if self._owns_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        if self._transport is None:
            raise RmbtError("No transport available. Pass transport= or let the client create its own session")
        self._registry = RequestRegistry(self._transport)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.cancel_all_requests()
        if self._owns_transport:
            if not self._external_session and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None
            self._transport = None
        self._registry = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def config(self) -> RmbtConfig:
        return self._config

    @property
    def store(self) -> SettingsStore:
        return self._store

    @property
    def uuid(self) -> str | None:
        return self._store.uuid

    @property
    def base_url(self) -> str:
        return self._store.base_url

    @property
    def capabilities(self) -> Mapping[str, Any]:
        return self._store.capabilities

    @property
    def history_filters(self) -> Mapping[str, list[str]]:
        return self._store.history_filters

    @property
    def qos_test_names(self) -> Mapping[str, str]:
        return self._store.qos_test_names

    @property
    def open_test_base_url(self) -> str:
        return self._store.open_test_base_url

    @property
    def map_server_url(self) -> str | None:
        return self._store.map_server_url

    @property
    def stats_url(self) -> str | None:
        return self._store.stats_url

    @property
    def pending_requests(self) -> int:
        """Number of exchanges currently in flight."""
        return len(self._registry) if self._registry is not None else 0

    def update_with_current_settings(self) -> None:
        self._store.update_with_current_settings()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_registry(self) -> RequestRegistry:
        if self._registry is None:
            raise RmbtError("Client not initialized. Use 'async with RmbtControlClient(...) as client:'")
        return self._registry

    async def _invoke(
        self,
        name: str,
        build: Callable[[str | None], RequestSpec],
        parse: Callable[[Any], T],
        *,
        gated: bool = True,
    ) -> T:
        invocation: Invocation[T] = Invocation(
            name,
            store=self._store,
            registry=self._require_registry(),
            ensure_identity=self._ensure_identity if gated else None,
            on_state_change=self._on_state_change,
        )
        return await invocation.run(build, parse)

    async def _ensure_identity(self) -> None:
        """Obtain a client UUID, joining an in-flight settings fetch if any."""
        if self._store.uuid is not None:
            return
        task = self._bootstrap_task
        if task is None or task.done():
            _logger.debug("No client UUID; fetching settings first")
            task = asyncio.get_running_loop().create_task(self.get_settings())
            self._bootstrap_task = task
            task.add_done_callback(self._bootstrap_done)
        try:
            await asyncio.shield(task)
        except RmbtCancelledError:
            raise
        except RmbtError as exc:
            raise RmbtBootstrapError(exc, endpoint=ENDPOINT_SETTINGS) from exc
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            raise RmbtCancelledError("Settings bootstrap was cancelled", endpoint=ENDPOINT_SETTINGS) from None

        if self._store.uuid is None:
            cause = RmbtDecodeError("Settings response carried no client UUID", endpoint=ENDPOINT_SETTINGS)
            raise RmbtBootstrapError(cause, endpoint=ENDPOINT_SETTINGS)

    def _bootstrap_done(self, task: asyncio.Task[SettingsSnapshot]) -> None:
        if self._bootstrap_task is task:
            self._bootstrap_task = None
        if not task.cancelled() and task.exception() is not None:
            _logger.debug("Settings bootstrap failed: %s", task.exception())

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> SettingsSnapshot:
        """Fetch settings and apply them to the store before returning."""

        def _parse(payload: Any) -> SettingsSnapshot:
            snapshot, uuid = _settings_api.parse_settings_response(payload, self._config)
            self._store.apply_settings(snapshot, uuid=uuid)
            return snapshot

        return await self._invoke(
            "get_settings",
            lambda uuid: _settings_api.build_settings_request(self._config, uuid),
            _parse,
            gated=False,
        )

    # ------------------------------------------------------------------
    # News and status
    # ------------------------------------------------------------------

    async def get_news(self) -> list[NewsItem]:
        """Fetch news newer than the last item seen by this client."""

        def _parse(payload: Any) -> list[NewsItem]:
            items = _news_api.parse_news_response(payload)
            if items:
                self._store.last_news_uid = max(self._store.last_news_uid, *(n.uid for n in items))
            return items

        return await self._invoke(
            "get_news",
            lambda uuid: _news_api.build_news_request(self._config, uuid, self._store.last_news_uid),
            _parse,
        )

    async def get_roaming_status(self, params: Mapping[str, Any] | None = None) -> bool:
        """Return ``True`` when the client is out of its home country.

        *params* carries the connectivity and location fields the server
        uses to decide.
        """
        return await self._invoke(
            "get_roaming_status",
            lambda uuid: _news_api.build_roaming_request(self._config, uuid, params or {}),
            _news_api.parse_roaming_response,
        )

    # ------------------------------------------------------------------
    # Test parameters
    # ------------------------------------------------------------------

    async def get_test_params(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        test_counter: int | None = None,
        previous_test_status: str | None = None,
    ) -> TestParams:
        """Retrieve the configuration for the next measurement run.

        The current test counter and the outcome of the previous test are
        submitted along with *params*. The returned parameters belong to the
        caller and are not kept by the client.
        """
        return await self._invoke(
            "get_test_params",
            lambda uuid: _test_params_api.build_test_request(
                self._config,
                uuid,
                params or {},
                test_counter=test_counter,
                previous_test_status=previous_test_status,
            ),
            _test_params_api.parse_test_response,
        )

    async def get_qos_params(self) -> QosParams:
        """Retrieve QoS sub-test parameters; an empty ``tests`` list is a valid result."""
        return await self._invoke(
            "get_qos_params",
            lambda uuid: _test_params_api.build_qos_request(self._config, uuid),
            _test_params_api.parse_qos_response,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_history(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        length: int = 20,
        offset: int = 0,
    ) -> HistoryPage:
        """Fetch one window of previous test results."""
        if length <= 0:
            raise ValueError(f"length must be positive, got {length}")
        if offset < 0:
            raise ValueError(f"offset must not be negative, got {offset}")

        return await self._invoke(
            "get_history",
            lambda uuid: _history_api.build_history_request(
                self._config, uuid, filters or {}, length=length, offset=offset
            ),
            lambda payload: _history_api.parse_history_response(payload, length=length, offset=offset),
        )

    async def get_history_result(self, test_uuid: str, *, full_details: bool = False) -> HistoryResult:
        return await self._invoke(
            "get_history_result",
            lambda uuid: _history_api.build_result_request(self._config, uuid, test_uuid, full_details=full_details),
            lambda payload: _history_api.parse_result_response(payload, test_uuid, full_details=full_details),
        )

    async def get_history_qos_result(self, test_uuid: str) -> QosResult:
        return await self._invoke(
            "get_history_qos_result",
            lambda uuid: _history_api.build_qos_result_request(self._config, uuid, test_uuid),
            _history_api.parse_qos_result_response,
        )

    async def get_history_open_data_result(self, open_uuid: str) -> OpenDataResult:
        """Fetch the public open-data record of a test by its open test UUID."""
        return await self._invoke(
            "get_history_open_data_result",
            lambda _uuid: _history_api.build_open_data_request(self._store.open_test_base_url, open_uuid),
            lambda payload: _history_api.parse_open_data_response(payload, open_uuid),
        )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def get_sync_code(self) -> SyncCode:
        """Request a code another client can redeem to share this history."""
        return await self._invoke(
            "get_sync_code",
            lambda uuid: _sync_api.build_sync_code_request(self._config, uuid),
            _sync_api.parse_sync_code_response,
        )

    async def sync_with_code(self, code: str) -> SyncOutcome:
        """Redeem a sync code and adopt the identity it belongs to."""
        code = code.strip()
        if not code:
            raise ValueError("sync code must not be empty")

        def _parse(payload: Any) -> SyncOutcome:
            outcome = _sync_api.parse_sync_redeem_response(payload)
            if outcome.success and outcome.uuid:
                self._store.adopt_uuid(outcome.uuid)
            return outcome

        return await self._invoke(
            "sync_with_code",
            lambda uuid: _sync_api.build_sync_redeem_request(self._config, uuid, code),
            _parse,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_result(
        self,
        result: Mapping[str, Any],
        endpoint: str | None = None,
        *,
        acceptable_status_codes: Iterable[int] | None = None,
    ) -> SubmitAck:
        """Submit a measurement or QoS result.

        With ``endpoint=None`` the result goes to the control server's
        ``result`` endpoint; otherwise it is posted to *endpoint* as given
        (the QoS collector URL handed out with the test parameters).
        Failures always raise: a lost result is lost user data.
        """
        target = endpoint or None

        def _build(uuid: str | None) -> RequestSpec:
            return _submit_api.build_submit_request(
                self._config,
                uuid,
                result,
                endpoint=target,
                acceptable_status_codes=acceptable_status_codes,
            )

        return await self._invoke(
            "submit_result",
            _build,
            lambda payload: _submit_api.parse_submit_response(payload, target or ENDPOINT_RESULT),
        )

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def get_ip(self, version: int = 4) -> IpInfo:
        """Return the public address of this client over IPv4 or IPv6."""
        if version not in (4, 6):
            raise ValueError(f"version must be 4 or 6, got {version}")

        def _url() -> str:
            snapshot = self._store.snapshot
            advertised = None
            if snapshot is not None:
                advertised = snapshot.ipv4_check_url if version == 4 else snapshot.ipv6_check_url
            if advertised:
                return advertised
            base = self._config.ipv4_base_url if version == 4 else self._config.ipv6_base_url
            return f"{base.rstrip('/')}/{ENDPOINT_IP}"

        return await self._invoke(
            "get_ip",
            lambda uuid: _submit_api.build_ip_request(self._config, uuid, _url()),
            lambda payload: _submit_api.parse_ip_response(payload, _url()),
        )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_all_requests(self) -> int:
        """Abort every in-flight exchange; returns how many were cancelled.

        Operations waiting on a cancelled exchange raise
        :class:`~pyrmbt.exceptions.RmbtCancelledError`. An operation whose
        settings bootstrap was cancelled never dispatches its own request.
        """
        if self._registry is None:
            return 0
        return self._registry.cancel_all()

    def reset(self) -> None:
        """Drop identity and settings and abort pending work. Intended for tests."""
        self.cancel_all_requests()
        task = self._bootstrap_task
        self._bootstrap_task = None
        if task is not None and not task.done():
            task.cancel()
        self._store.reset()
