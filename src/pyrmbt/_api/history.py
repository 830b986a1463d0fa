"""History list and per-test detail endpoints.

Pagination is the caller's business: every call reaches the server, no
page is cached or deduplicated here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from pyrmbt._api._common import build_common_body, first_entry_or_raise, post, require_dict, validate
from pyrmbt._constants import (
    ENDPOINT_HISTORY,
    ENDPOINT_QOS_TEST_RESULT,
    ENDPOINT_TEST_RESULT,
    ENDPOINT_TEST_RESULT_DETAIL,
)
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.exceptions import RmbtDecodeError
from pyrmbt.models.history import HistoryItem, HistoryPage, HistoryResult, OpenDataResult, QosResult


def build_history_request(
    config: RmbtConfig,
    uuid: str | None,
    filters: Mapping[str, Any],
    *,
    length: int,
    offset: int,
) -> RequestSpec:
    extra: dict[str, Any] = {"result_limit": length, "result_offset": offset}
    for key, value in filters.items():
        # The server expects every filter as a list of accepted values.
        if isinstance(value, (list, tuple, set, frozenset)):
            extra[key] = list(value)
        else:
            extra[key] = [value]
    return post(ENDPOINT_HISTORY, build_common_body(config, uuid=uuid, extra=extra))


def parse_history_response(payload: Any, *, length: int, offset: int) -> HistoryPage:
    data = require_dict(payload, ENDPOINT_HISTORY)
    rows = data.get("history") or []
    if not isinstance(rows, list):
        raise RmbtDecodeError("history is not a list", endpoint=ENDPOINT_HISTORY)
    items = [validate(HistoryItem, row, ENDPOINT_HISTORY) for row in rows]
    return HistoryPage(length=length, offset=offset, items=items, raw=data)


def build_result_request(config: RmbtConfig, uuid: str | None, test_uuid: str, *, full_details: bool) -> RequestSpec:
    path = ENDPOINT_TEST_RESULT_DETAIL if full_details else ENDPOINT_TEST_RESULT
    return post(path, build_common_body(config, uuid=uuid, extra={"test_uuid": test_uuid}))


def parse_result_response(payload: Any, test_uuid: str, *, full_details: bool) -> HistoryResult:
    if full_details:
        data = require_dict(payload, ENDPOINT_TEST_RESULT_DETAIL)
        details = data.get("testresultdetail")
        if not isinstance(details, list):
            raise RmbtDecodeError("testresultdetail is not a list", endpoint=ENDPOINT_TEST_RESULT_DETAIL)
        return validate(
            HistoryResult,
            {"test_uuid": test_uuid, "details": details, "full_details": True, "raw": data},
            ENDPOINT_TEST_RESULT_DETAIL,
        )

    data = require_dict(payload, ENDPOINT_TEST_RESULT)
    entry = first_entry_or_raise(data, "testresult", ENDPOINT_TEST_RESULT)
    return validate(HistoryResult, {"test_uuid": test_uuid, **entry}, ENDPOINT_TEST_RESULT)


def build_qos_result_request(config: RmbtConfig, uuid: str | None, test_uuid: str) -> RequestSpec:
    return post(ENDPOINT_QOS_TEST_RESULT, build_common_body(config, uuid=uuid, extra={"test_uuid": test_uuid}))


def parse_qos_result_response(payload: Any) -> QosResult:
    return validate(QosResult, require_dict(payload, ENDPOINT_QOS_TEST_RESULT), ENDPOINT_QOS_TEST_RESULT)


def build_open_data_request(open_test_base_url: str, open_uuid: str) -> RequestSpec:
    return RequestSpec(method="GET", url=f"{open_test_base_url}{open_uuid}")


def parse_open_data_response(payload: Any, open_uuid: str) -> OpenDataResult:
    data = require_dict(payload, "opentests")
    try:
        result = OpenDataResult.from_payload(data)
    except ValidationError as exc:
        raise RmbtDecodeError(f"Unexpected open data payload: {exc}", endpoint="opentests") from exc
    if result.open_test_uuid is None:
        result = result.model_copy(update={"open_test_uuid": open_uuid})
    return result
