"""Client configuration for pyrmbt."""

from __future__ import annotations

import dataclasses
import json
import os
from typing import Any

from pyrmbt._constants import BASE_URL, IPV4_BASE_URL, IPV6_BASE_URL
from pyrmbt.exceptions import RmbtConfigError


def _env_ip_version(value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    normalized = value.strip().lower().removeprefix("ipv")
    if normalized in {"4", "6"}:
        return int(normalized)
    raise RmbtConfigError(f"RMBT_IP_VERSION must be 4 or 6, got {value!r}")


@dataclasses.dataclass(frozen=True)
class ClientProfile:
    """Client identity fields sent with every control server request.

    These describe the software and platform performing the measurement,
    not the user.
    """

    client: str = "RMBT"
    type: str = "MOBILE"
    platform: str = "iOS"
    os_version: str = "17.0"
    model: str = "iPhone15,2"
    device: str = "iPhone"
    version_name: str = "4.0.0"
    version_code: str = "400"


@dataclasses.dataclass(frozen=True)
class RmbtConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Control server base URL used per default.
    ipv4_base_url : str
        Control server base URL used when ``ip_version`` is ``4`` and the
        settings response does not advertise one.
    ipv6_base_url : str
        Ditto for ``ip_version`` ``6``.
    ip_version : int or None
        Force all control traffic over IPv4 (``4``) or IPv6 (``6``).
        ``None`` uses the default dual-stack URL.
    open_test_base_url : str
        Fallback prefix for open-data lookups when settings carry none.
    language : str
        Language code sent to the server (e.g. ``"en"``).
    timezone : str
        IANA time zone string.
    request_timeout : float
        Total seconds allowed per request. Timeouts surface as
        :class:`~pyrmbt.exceptions.RmbtTransportError`.
    client_uuid : str or None
        Previously issued client UUID. When set the identity bootstrap is
        skipped until the first operation needs fresh settings.
    terms_version : int
        Accepted terms-and-conditions version echoed to the settings call.
    client_capabilities : dict
        Capabilities the client announces with every request.
    profile : ClientProfile
        Platform and software identity fields.
    """

    base_url: str = BASE_URL
    ipv4_base_url: str = IPV4_BASE_URL
    ipv6_base_url: str = IPV6_BASE_URL
    ip_version: int | None = None
    open_test_base_url: str = "https://www.netztest.at/opendata/opentests/"
    language: str = "en"
    timezone: str = "Europe/Vienna"
    request_timeout: float = 30.0
    client_uuid: str | None = None
    terms_version: int = 6
    client_capabilities: dict[str, Any] = dataclasses.field(
        default_factory=lambda: {
            "classification": {"count": 4},
            "qos": {"supports_info": True},
            "RMBThttp": True,
        }
    )
    profile: ClientProfile = dataclasses.field(default_factory=ClientProfile)

    def __post_init__(self) -> None:
        if self.ip_version not in (None, 4, 6):
            raise RmbtConfigError(f"ip_version must be None, 4 or 6, got {self.ip_version!r}")
        if self.request_timeout <= 0:
            raise RmbtConfigError("request_timeout must be positive")

    @property
    def default_base_url(self) -> str:
        """Base URL used before settings have negotiated one."""
        if self.ip_version == 4:
            return self.ipv4_base_url
        if self.ip_version == 6:
            return self.ipv6_base_url
        return self.base_url

    @classmethod
    def from_env(cls, **overrides: Any) -> RmbtConfig:
        """Create configuration from environment variables.

        Reads optional ``RMBT_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        RmbtConfig
            Populated configuration.
        """
        env = os.environ

        profile_kwargs: dict[str, str] = {}
        _ENV_PROFILE_MAP = {
            "RMBT_CLIENT": "client",
            "RMBT_CLIENT_TYPE": "type",
            "RMBT_PLATFORM": "platform",
            "RMBT_OS_VERSION": "os_version",
            "RMBT_MODEL": "model",
            "RMBT_DEVICE": "device",
            "RMBT_VERSION_NAME": "version_name",
            "RMBT_VERSION_CODE": "version_code",
        }
        for env_key, field_name in _ENV_PROFILE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                profile_kwargs[field_name] = val

        profile_overrides = overrides.pop("profile", None)
        if isinstance(profile_overrides, dict):
            profile_kwargs.update(profile_overrides)
        elif isinstance(profile_overrides, ClientProfile):
            profile_kwargs = dataclasses.asdict(profile_overrides)

        profile = ClientProfile(**profile_kwargs) if profile_kwargs else ClientProfile()

        _ENV_CONFIG_MAP = {
            "RMBT_BASE_URL": "base_url",
            "RMBT_IPV4_BASE_URL": "ipv4_base_url",
            "RMBT_IPV6_BASE_URL": "ipv6_base_url",
            "RMBT_OPEN_TEST_BASE_URL": "open_test_base_url",
            "RMBT_LANGUAGE": "language",
            "RMBT_TIMEZONE": "timezone",
            "RMBT_CLIENT_UUID": "client_uuid",
        }
        config_kwargs: dict[str, Any] = {"profile": profile}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "ip_version" not in overrides:
            config_kwargs["ip_version"] = _env_ip_version(env.get("RMBT_IP_VERSION"))

        timeout_env = env.get("RMBT_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = float(timeout_env)

        terms_env = env.get("RMBT_TERMS_VERSION")
        if terms_env is not None and "terms_version" not in overrides:
            config_kwargs["terms_version"] = int(terms_env)

        caps_env = env.get("RMBT_CLIENT_CAPABILITIES")
        if caps_env is not None and "client_capabilities" not in overrides:
            try:
                caps = json.loads(caps_env)
            except json.JSONDecodeError as exc:
                raise RmbtConfigError("RMBT_CLIENT_CAPABILITIES is not valid JSON") from exc
            if not isinstance(caps, dict):
                raise RmbtConfigError("RMBT_CLIENT_CAPABILITIES must be a JSON object")
            config_kwargs["client_capabilities"] = caps

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
