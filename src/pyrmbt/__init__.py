"""pyrmbt - Async Python client for the RMBT measurement control server."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrmbt")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrmbt._api._invocation import InvocationState
from pyrmbt._requests import PendingRequest, RequestRegistry, RequestState
from pyrmbt._transport import HttpTransport, RequestSpec, Transport
from pyrmbt.client import RmbtControlClient
from pyrmbt.config import ClientProfile, RmbtConfig
from pyrmbt.exceptions import (
    ErrorCategory,
    RmbtBootstrapError,
    RmbtCancelledError,
    RmbtConfigError,
    RmbtDecodeError,
    RmbtError,
    RmbtServerError,
    RmbtTransportError,
)
from pyrmbt.models import (
    HistoryItem,
    HistoryPage,
    HistoryResult,
    IpInfo,
    NewsItem,
    OpenDataResult,
    QosParams,
    QosResult,
    QosTestDescriptor,
    SettingsSnapshot,
    SubmitAck,
    SyncCode,
    SyncOutcome,
    TestParams,
)
from pyrmbt.store import SettingsStore

__all__ = [
    "__version__",
    "ClientProfile",
    "ErrorCategory",
    "HistoryItem",
    "HistoryPage",
    "HistoryResult",
    "HttpTransport",
    "InvocationState",
    "IpInfo",
    "NewsItem",
    "OpenDataResult",
    "PendingRequest",
    "QosParams",
    "QosResult",
    "QosTestDescriptor",
    "RequestRegistry",
    "RequestSpec",
    "RequestState",
    "RmbtBootstrapError",
    "RmbtCancelledError",
    "RmbtConfig",
    "RmbtConfigError",
    "RmbtControlClient",
    "RmbtDecodeError",
    "RmbtError",
    "RmbtServerError",
    "RmbtTransportError",
    "SettingsSnapshot",
    "SettingsStore",
    "SubmitAck",
    "SyncCode",
    "SyncOutcome",
    "TestParams",
    "Transport",
]
