"""Acknowledgements for result submission and the IP check."""

from __future__ import annotations

from typing import ClassVar

from pyrmbt.models._base import RmbtBaseModel


class SubmitAck(RmbtBaseModel):
    """Acknowledgement of a submitted result; the payload may be empty."""

    endpoint: str
    test_uuid: str | None = None
    open_test_uuid: str | None = None


class IpInfo(RmbtBaseModel):
    """Public address as seen by the control server."""

    ip: str
    v: str | None = None

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"version": "v"}
