"""News and roaming-status endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pyrmbt._api._common import build_common_body, post, require_dict, validate
from pyrmbt._constants import ENDPOINT_NEWS, ENDPOINT_STATUS
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.exceptions import RmbtDecodeError
from pyrmbt.models.news import NewsItem


def build_news_request(config: RmbtConfig, uuid: str | None, last_news_uid: int) -> RequestSpec:
    return post(ENDPOINT_NEWS, build_common_body(config, uuid=uuid, extra={"lastNewsUid": last_news_uid}))


def parse_news_response(payload: Any) -> list[NewsItem]:
    data = require_dict(payload, ENDPOINT_NEWS)
    items = data.get("news") or []
    if not isinstance(items, list):
        raise RmbtDecodeError("news is not a list", endpoint=ENDPOINT_NEWS)
    return [validate(NewsItem, item, ENDPOINT_NEWS) for item in items]


def build_roaming_request(config: RmbtConfig, uuid: str | None, params: Mapping[str, Any]) -> RequestSpec:
    return post(ENDPOINT_STATUS, build_common_body(config, uuid=uuid, extra=params))


def parse_roaming_response(payload: Any) -> bool:
    """Return ``True`` when the client is outside its home country."""
    data = require_dict(payload, ENDPOINT_STATUS)
    home_country = data.get("home_country")
    if not isinstance(home_country, bool):
        raise RmbtDecodeError("status response has no home_country flag", endpoint=ENDPOINT_STATUS)
    return not home_country
