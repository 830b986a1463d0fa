"""Sync-code exchange between two client identities."""

from __future__ import annotations

from pyrmbt.models._base import RmbtBaseModel


class SyncCode(RmbtBaseModel):
    """Short-lived code another client can redeem to share this history."""

    sync_code: str


class SyncOutcome(RmbtBaseModel):
    """Result of redeeming a sync code.

    ``uuid`` is the identity the redeeming client now shares, when the
    server hands one back.
    """

    success: bool = True
    uuid: str | None = None
    msg_title: str | None = None
    msg_text: str | None = None
