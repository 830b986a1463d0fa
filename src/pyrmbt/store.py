"""Identity and settings state shared by all client operations."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pyrmbt.config import RmbtConfig
from pyrmbt.models.settings import SettingsSnapshot

_logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class SettingsStore:
    """Holds the client UUID and the last negotiated settings snapshot.

    One store is owned by each :class:`~pyrmbt.client.RmbtControlClient`.
    Writers replace the snapshot with a single reference swap, so readers
    always see either the old or the new snapshot in full.
    """

    def __init__(self, config: RmbtConfig) -> None:
        self._config = config
        self._uuid: str | None = config.client_uuid or None
        self._snapshot: SettingsSnapshot | None = None
        self._history_filters: Mapping[str, list[str]] = _EMPTY
        self._qos_test_names: Mapping[str, str] = _EMPTY
        self.last_news_uid: int = 0

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def uuid(self) -> str | None:
        return self._uuid

    @property
    def snapshot(self) -> SettingsSnapshot | None:
        return self._snapshot

    @property
    def base_url(self) -> str:
        """Negotiated control server URL, or the configured default."""
        snapshot = self._snapshot
        if snapshot is not None and snapshot.base_url:
            return snapshot.base_url
        return self._config.default_base_url

    @property
    def capabilities(self) -> Mapping[str, Any]:
        snapshot = self._snapshot
        if snapshot is None:
            return _EMPTY
        return MappingProxyType(snapshot.capabilities)

    @property
    def history_filters(self) -> Mapping[str, list[str]]:
        return self._history_filters

    @property
    def qos_test_names(self) -> Mapping[str, str]:
        """Mapping of QoS test keys to display names, e.g. ``WEBSITE`` -> ``Web page``."""
        return self._qos_test_names

    @property
    def open_test_base_url(self) -> str:
        snapshot = self._snapshot
        if snapshot is not None and snapshot.open_test_base_url:
            return snapshot.open_test_base_url
        return self._config.open_test_base_url

    @property
    def map_server_url(self) -> str | None:
        snapshot = self._snapshot
        return snapshot.map_server_url if snapshot is not None else None

    @property
    def stats_url(self) -> str | None:
        snapshot = self._snapshot
        return snapshot.stats_url if snapshot is not None else None

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def apply_settings(self, snapshot: SettingsSnapshot, *, uuid: str | None = None) -> None:
        """Replace the snapshot and adopt *uuid* if no identity is held yet.

        Applying the same snapshot twice has no further effect.
        """
        self._snapshot = snapshot
        if uuid and self._uuid is None:
            self._uuid = uuid
            _logger.info("Registered new client identity")
        elif uuid and uuid != self._uuid:
            _logger.warning("Settings returned a different client UUID; keeping the current one")
        self.update_with_current_settings()

    def update_with_current_settings(self) -> None:
        """Re-derive the exposed name mappings from the latest snapshot."""
        snapshot = self._snapshot
        if snapshot is None:
            self._history_filters = _EMPTY
            self._qos_test_names = _EMPTY
            return
        self._history_filters = MappingProxyType(dict(snapshot.history_filters))
        self._qos_test_names = MappingProxyType(dict(snapshot.qos_test_names))

    def adopt_uuid(self, uuid: str) -> None:
        """Switch to another client's identity after a sync redemption."""
        if uuid != self._uuid:
            _logger.info("Adopting synced client identity")
        self._uuid = uuid

    def reset(self) -> None:
        """Return to the initial empty state. Intended for tests."""
        self._uuid = self._config.client_uuid or None
        self._snapshot = None
        self.last_news_uid = 0
        self.update_with_current_settings()
