"""Shared helpers for control server endpoint modules.

This module centralizes the most repeated patterns:
- building the common client fields every request carries
- wrapping a body into a :class:`RequestSpec`
- validating decoded payloads into models with decode-error mapping

It is internal to pyrmbt and may change at any time.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyrmbt._constants import DEFAULT_ACCEPTED_STATUS_CODES
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.exceptions import RmbtDecodeError
from pyrmbt.models._base import first_entry

M = TypeVar("M", bound=BaseModel)


def build_common_body(
    config: RmbtConfig,
    *,
    uuid: str | None = None,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the client fields echoed with every control server request."""
    profile = config.profile
    body: dict[str, Any] = {
        "language": config.language,
        "timezone": config.timezone,
        "client": profile.client,
        "type": profile.type,
        "platform": profile.platform,
        "os_version": profile.os_version,
        "model": profile.model,
        "device": profile.device,
        "version_name": profile.version_name,
        "version_code": profile.version_code,
        "capabilities": dict(config.client_capabilities),
    }
    if uuid:
        body["uuid"] = uuid
    if extra:
        body.update(extra)
    return body


def post(
    path: str,
    body: Mapping[str, Any],
    *,
    url: str | None = None,
    accepted_status_codes: Iterable[int] | None = None,
) -> RequestSpec:
    accepted = (
        frozenset(accepted_status_codes) if accepted_status_codes is not None else DEFAULT_ACCEPTED_STATUS_CODES
    )
    return RequestSpec(method="POST", path=path, url=url, body=body, accepted_status_codes=accepted)


def require_dict(payload: Any, endpoint: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise RmbtDecodeError(
            f"{endpoint} returned {type(payload).__name__}, expected an object",
            endpoint=endpoint,
        )
    return payload


def validate(model: type[M], data: Any, endpoint: str) -> M:
    """``model.model_validate`` with pydantic errors mapped to RmbtDecodeError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RmbtDecodeError(f"Unexpected {endpoint} payload: {exc}", endpoint=endpoint) from exc


def first_entry_or_raise(data: dict[str, Any], key: str, endpoint: str) -> dict[str, Any]:
    """Unwrap the ``{"<key>": [{...}]}`` envelope several endpoints use."""
    entry = first_entry(data, key)
    if not entry:
        raise RmbtDecodeError(f"{endpoint} response has no {key!r} entry", endpoint=endpoint)
    return entry
