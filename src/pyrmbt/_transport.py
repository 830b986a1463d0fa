"""HTTP transport for control server JSON exchanges."""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyrmbt._constants import DEFAULT_ACCEPTED_STATUS_CODES, USER_AGENT
from pyrmbt._redact import redact_for_log
from pyrmbt.exceptions import RmbtDecodeError, RmbtServerError, RmbtTransportError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RequestSpec:
    """One control server exchange.

    ``path`` is resolved against the negotiated base URL unless ``url``
    is given, in which case that literal URL is used.
    """

    method: str
    path: str = ""
    url: str | None = None
    body: Mapping[str, Any] | None = None
    accepted_status_codes: frozenset[int] = DEFAULT_ACCEPTED_STATUS_CODES

    def resolve_url(self, base_url: str) -> str:
        if self.url:
            return self.url
        return f"{base_url.rstrip('/')}/{self.path.lstrip('/')}"

    @property
    def endpoint(self) -> str:
        return self.url or self.path


class Transport(Protocol):
    """Structural transport interface used by the request registry.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def send(self, spec: RequestSpec, base_url: str) -> Any:
        ...


def _server_errors(payload: Any) -> list[str]:
    """Extract the control server's ``error`` list from a decoded body."""
    if not isinstance(payload, dict):
        return []
    errors = payload.get("error")
    if isinstance(errors, str):
        return [errors] if errors else []
    if isinstance(errors, list):
        return [str(e) for e in errors if e]
    return []


class HttpTransport:
    """aiohttp-backed transport speaking JSON to the control server."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def send(self, spec: RequestSpec, base_url: str) -> Any:
        """Perform *spec* and return the decoded JSON payload.

        Raises
        ------
        RmbtTransportError
            Connection failure or timeout.
        RmbtServerError
            Status outside ``spec.accepted_status_codes`` or a non-empty
            ``error`` list in the body.
        RmbtDecodeError
            Body is not UTF-8 encoded JSON.
        """
        url = spec.resolve_url(base_url)
        endpoint = spec.endpoint
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        body = None
        if spec.body is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
            body = json.dumps(dict(spec.body), separators=(",", ":"))

        _logger.debug("%s %s body=%s", spec.method, url, redact_for_log(spec.body))

        try:
            async with self._http.request(
                spec.method,
                url,
                data=body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                raw_body = await resp.read()
        except aiohttp.ClientError as exc:
            raise RmbtTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except TimeoutError as exc:
            raise RmbtTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

        payload: Any = {}
        decode_error: ValueError | None = None
        try:
            text = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            text = raw_body.decode("utf-8", errors="replace")
            decode_error = exc
        if decode_error is None and text.strip():
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as exc:
                decode_error = exc

        if status not in spec.accepted_status_codes:
            errors = _server_errors(payload) if decode_error is None else []
            detail = "; ".join(errors) if errors else text[:200]
            _logger.warning("HTTP %s from %s: %s", status, endpoint, detail)
            raise RmbtServerError(
                f"HTTP {status} from {endpoint}: {detail}",
                status_code=status,
                errors=errors,
                endpoint=endpoint,
            )

        if decode_error is not None:
            raise RmbtDecodeError(f"Malformed body from {endpoint}: {text[:200]}", endpoint=endpoint) from decode_error

        errors = _server_errors(payload)
        if errors:
            _logger.warning("Server reported errors from %s: %s", endpoint, errors)
            raise RmbtServerError(
                f"{endpoint} failed: {'; '.join(errors)}",
                status_code=status,
                errors=errors,
                endpoint=endpoint,
            )

        _logger.debug("%s %s -> %s %s", spec.method, url, status, redact_for_log(payload))
        return payload
