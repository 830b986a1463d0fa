"""Sync-code issuance and redemption."""

from __future__ import annotations

from typing import Any

from pyrmbt._api._common import build_common_body, first_entry_or_raise, post, require_dict, validate
from pyrmbt._constants import ENDPOINT_SYNC
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.models.sync import SyncCode, SyncOutcome


def build_sync_code_request(config: RmbtConfig, uuid: str | None) -> RequestSpec:
    return post(ENDPOINT_SYNC, build_common_body(config, uuid=uuid))


def parse_sync_code_response(payload: Any) -> SyncCode:
    entry = first_entry_or_raise(require_dict(payload, ENDPOINT_SYNC), "sync", ENDPOINT_SYNC)
    return validate(SyncCode, entry, ENDPOINT_SYNC)


def build_sync_redeem_request(config: RmbtConfig, uuid: str | None, code: str) -> RequestSpec:
    return post(ENDPOINT_SYNC, build_common_body(config, uuid=uuid, extra={"sync_code": code}))


def parse_sync_redeem_response(payload: Any) -> SyncOutcome:
    data = require_dict(payload, ENDPOINT_SYNC)
    entry = first_entry_or_raise(data, "sync", ENDPOINT_SYNC)
    # Some deployments return the shared identity next to the sync list.
    if "uuid" not in entry and data.get("uuid"):
        entry = {**entry, "uuid": data["uuid"]}
    return validate(SyncOutcome, entry, ENDPOINT_SYNC)
