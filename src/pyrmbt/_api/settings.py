"""Settings endpoint: identity bootstrap and capability negotiation."""

from __future__ import annotations

from typing import Any

from pyrmbt._api._common import build_common_body, first_entry_or_raise, post, require_dict, validate
from pyrmbt._constants import ENDPOINT_SETTINGS, MAP_SERVER_PATH
from pyrmbt._transport import RequestSpec
from pyrmbt.config import RmbtConfig
from pyrmbt.models.settings import SettingsSnapshot, TermsAndConditions


def build_settings_request(config: RmbtConfig, uuid: str | None) -> RequestSpec:
    body = build_common_body(
        config,
        uuid=uuid,
        extra={
            "terms_and_conditions_accepted": True,
            "terms_and_conditions_accepted_version": config.terms_version,
        },
    )
    return post(ENDPOINT_SETTINGS, body)


def _map_server_url(entry: dict[str, Any], urls: dict[str, Any]) -> str | None:
    map_server = entry.get("map_server")
    if isinstance(map_server, dict) and map_server.get("host"):
        scheme = "https" if map_server.get("ssl", True) else "http"
        host = str(map_server["host"])
        port = map_server.get("port")
        default_port = 443 if scheme == "https" else 80
        netloc = host if port in (None, "", default_port) else f"{host}:{port}"
        return f"{scheme}://{netloc}{MAP_SERVER_PATH}"
    url = urls.get("url_map_server")
    return str(url) if url else None


def _history_filters(entry: dict[str, Any]) -> dict[str, list[str]]:
    history = entry.get("history")
    if not isinstance(history, dict):
        return {}
    return {str(k): [str(item) for item in v] for k, v in history.items() if isinstance(v, list)}


def _qos_test_names(entry: dict[str, Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for item in entry.get("qostesttype_desc") or []:
        if isinstance(item, dict) and item.get("test_type"):
            names[str(item["test_type"])] = str(item.get("name") or item["test_type"])
    return names


def _negotiated_base_url(config: RmbtConfig, urls: dict[str, Any]) -> str:
    if config.ip_version == 4 and urls.get("control_ipv4_only"):
        return str(urls["control_ipv4_only"])
    if config.ip_version == 6 and urls.get("control_ipv6_only"):
        return str(urls["control_ipv6_only"])
    return config.default_base_url


def parse_settings_response(payload: Any, config: RmbtConfig) -> tuple[SettingsSnapshot, str | None]:
    """Return the snapshot and the client UUID (if the server issued one)."""
    data = require_dict(payload, ENDPOINT_SETTINGS)
    entry = first_entry_or_raise(data, "settings", ENDPOINT_SETTINGS)

    urls = entry.get("urls")
    urls = urls if isinstance(urls, dict) else {}

    terms_raw = entry.get("terms_and_conditions")
    terms = validate(TermsAndConditions, terms_raw, ENDPOINT_SETTINGS) if isinstance(terms_raw, dict) else None

    capabilities = entry.get("capabilities", data.get("capabilities"))

    snapshot = SettingsSnapshot(
        base_url=_negotiated_base_url(config, urls),
        history_filters=_history_filters(entry),
        qos_test_names=_qos_test_names(entry),
        open_test_base_url=str(urls.get("open_data_prefix") or config.open_test_base_url),
        map_server_url=_map_server_url(entry, urls),
        stats_url=str(urls["statistics"]) if urls.get("statistics") else None,
        ipv4_check_url=str(urls["url_ipv4_check"]) if urls.get("url_ipv4_check") else None,
        ipv6_check_url=str(urls["url_ipv6_check"]) if urls.get("url_ipv6_check") else None,
        terms_and_conditions=terms,
        capabilities=dict(capabilities) if isinstance(capabilities, dict) else {},
    )
    uuid = entry.get("uuid")
    return snapshot, str(uuid) if uuid else None
