"""Result submission and the public-IP check."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pyrmbt._api._common import build_common_body, post, validate
from pyrmbt._constants import ENDPOINT_RESULT
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.models.submit import IpInfo, SubmitAck


def build_submit_request(
    config: RmbtConfig,
    uuid: str | None,
    result: Mapping[str, Any],
    *,
    endpoint: str | None = None,
    acceptable_status_codes: Iterable[int] | None = None,
) -> RequestSpec:
    """POST *result* to the default ``result`` endpoint or to *endpoint* verbatim.

    A ``client_uuid`` already present in *result* is kept.
    """
    body = build_common_body(config, extra=result)
    if uuid:
        body.setdefault("client_uuid", uuid)
    return post(ENDPOINT_RESULT, body, url=endpoint, accepted_status_codes=acceptable_status_codes)


def parse_submit_response(payload: Any, endpoint: str) -> SubmitAck:
    """Build the acknowledgement for an accepted submission.

    The server already accepted the result at this point, so echoed fields
    of an unexpected type are dropped instead of failing the call.
    """
    data = payload if isinstance(payload, dict) else {}
    echoed = {key: data[key] for key in ("test_uuid", "open_test_uuid") if isinstance(data.get(key), str)}
    return SubmitAck(endpoint=endpoint, raw=data, **echoed)


def build_ip_request(config: RmbtConfig, uuid: str | None, url: str) -> RequestSpec:
    return post("", build_common_body(config, uuid=uuid), url=url)


def parse_ip_response(payload: Any, url: str) -> IpInfo:
    data = payload if isinstance(payload, dict) else {}
    return validate(IpInfo, data, url)
