"""Data models for control server payloads."""

from pyrmbt.models._base import RmbtBaseModel
from pyrmbt.models.history import (
    FenceData,
    HistoryItem,
    HistoryPage,
    HistoryResult,
    OpenDataResult,
    PingPoint,
    QosResult,
    SpeedCurvePoint,
)
from pyrmbt.models.news import NewsItem
from pyrmbt.models.qos import QosParams, QosTestDescriptor
from pyrmbt.models.settings import SettingsSnapshot, TermsAndConditions
from pyrmbt.models.submit import IpInfo, SubmitAck
from pyrmbt.models.sync import SyncCode, SyncOutcome
from pyrmbt.models.test_params import TestParams

__all__ = [
    "FenceData",
    "HistoryItem",
    "HistoryPage",
    "HistoryResult",
    "IpInfo",
    "NewsItem",
    "OpenDataResult",
    "PingPoint",
    "QosParams",
    "QosResult",
    "QosTestDescriptor",
    "RmbtBaseModel",
    "SettingsSnapshot",
    "SpeedCurvePoint",
    "SubmitAck",
    "SyncCode",
    "SyncOutcome",
    "TermsAndConditions",
    "TestParams",
]
