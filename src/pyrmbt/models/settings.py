"""Settings snapshot negotiated with the control server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyrmbt.models._base import RmbtBaseModel


class TermsAndConditions(RmbtBaseModel):
    """Current terms-and-conditions version advertised by the server."""

    version: int | None = None
    url: str | None = None


class SettingsSnapshot(BaseModel):
    """Immutable view of one successful settings fetch.

    Replaced as a whole by :meth:`pyrmbt.store.SettingsStore.apply_settings`;
    never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    history_filters: dict[str, list[str]] = Field(default_factory=dict)
    qos_test_names: dict[str, str] = Field(default_factory=dict)
    open_test_base_url: str = ""
    map_server_url: str | None = None
    stats_url: str | None = None
    ipv4_check_url: str | None = None
    ipv6_check_url: str | None = None
    terms_and_conditions: TermsAndConditions | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)
