"""History list rows and per-test result details."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from pyrmbt.models._base import RmbtBaseModel


class HistoryItem(RmbtBaseModel):
    """One row of the history list."""

    test_uuid: str | None = None
    open_test_uuid: str | None = None
    loop_uuid: str | None = None
    time: int | None = None
    time_zone: str | None = None
    time_string: str | None = None
    qos_result_available: bool = False
    speed_download: str | None = None
    speed_upload: str | None = None
    ping: str | None = None
    ping_shortest: str | None = None
    model: str | None = None
    network_type: str | None = None
    network_name: str | None = None
    operator_name: str | None = None
    speed_download_classification: int | None = None
    speed_upload_classification: int | None = None
    ping_classification: int | None = None
    ping_short_classification: int | None = None

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "ping_shortest_classification": "ping_short_classification",
        "operator": "operator_name",
    }


class HistoryPage(RmbtBaseModel):
    """One pagination window of history rows, as returned by the server."""

    length: int
    offset: int
    items: list[HistoryItem] = Field(default_factory=list)

    @property
    def is_last(self) -> bool:
        """Whether the server returned fewer rows than were requested."""
        return len(self.items) < self.length


class HistoryResult(RmbtBaseModel):
    """Detail of one stored test (``testresult`` / ``testresultdetail``)."""

    test_uuid: str | None = None
    open_test_uuid: str | None = None
    time_string: str | None = None
    network_type: str | None = None
    measurement: list[dict[str, Any]] = Field(default_factory=list)
    net: list[dict[str, Any]] = Field(default_factory=list)
    details: list[dict[str, Any]] = Field(default_factory=list)
    geo_lat: float | None = None
    geo_long: float | None = None
    full_details: bool = False

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"testresultdetail": "details"}


class QosResult(RmbtBaseModel):
    """Evaluated QoS results of one stored test (``qosTestResult``)."""

    testresultdetail: list[dict[str, Any]] = Field(default_factory=list)
    testresultdetail_desc: list[dict[str, Any]] = Field(default_factory=list)
    testresultdetail_testdesc: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.testresultdetail if r.get("failure_count", 0) == 0)


class SpeedCurvePoint(RmbtBaseModel):
    bytes_total: float | None = None
    time_elapsed: int | None = None


class PingPoint(RmbtBaseModel):
    ping_ms: float | None = None
    time_elapsed: int | None = None


class FenceData(RmbtBaseModel):
    """One coverage fence of an open-data result."""

    fence_id: str | None = None
    technology_id: int | None = None
    technology: str | None = None
    longitude: float | None = None
    latitude: float | None = None
    offset_ms: int | None = None
    duration_ms: int | None = None
    radius: float | None = None
    avg_ping_ms: float | None = None


class OpenDataResult(RmbtBaseModel):
    """Public open-data record of one test, keyed by its open test UUID."""

    open_test_uuid: str | None = None
    download_curve: list[SpeedCurvePoint] = Field(default_factory=list)
    upload_curve: list[SpeedCurvePoint] = Field(default_factory=list)
    ping_curve: list[PingPoint] = Field(default_factory=list)
    signal_strength: int | None = None
    signal_classification: int | None = None
    fences: list[FenceData] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> OpenDataResult:
        """Lift the nested ``speed_curve`` section to top-level fields."""
        curve = payload.get("speed_curve")
        curve = curve if isinstance(curve, dict) else {}
        return cls.model_validate(
            {
                **payload,
                "download_curve": curve.get("download") or [],
                "upload_curve": curve.get("upload") or [],
                "ping_curve": curve.get("ping") or [],
                "raw": payload,
            }
        )
