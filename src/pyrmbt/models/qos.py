"""QoS sub-test parameters."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyrmbt.models._base import RmbtBaseModel


class QosTestDescriptor(BaseModel):
    """One QoS sub-test of a given kind (e.g. ``"WEBSITE"``)."""

    model_config = ConfigDict(frozen=True)

    kind: str
    params: dict[str, Any] = Field(default_factory=dict)


class QosParams(RmbtBaseModel):
    """Parameters handed out by ``qosTestRequest``.

    ``tests`` is empty when the server has no QoS tests configured for this
    client; that is a normal outcome, not an error.
    """

    test_token: str | None = None
    test_uuid: str | None = None
    test_duration: int | None = None
    test_numthreads: int | None = None
    tests: list[QosTestDescriptor] = Field(default_factory=list)

    @property
    def kinds(self) -> set[str]:
        return {t.kind for t in self.tests}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> QosParams:
        """Flatten the server's ``objectives`` mapping into descriptors."""
        objectives = payload.get("objectives")
        tests: list[QosTestDescriptor] = []
        if isinstance(objectives, dict):
            for kind, entries in objectives.items():
                if isinstance(entries, dict):
                    entries = [entries]
                if not isinstance(entries, list):
                    continue
                for entry in entries:
                    if isinstance(entry, dict):
                        tests.append(QosTestDescriptor(kind=str(kind), params=entry))
        return cls.model_validate({**payload, "tests": tests, "raw": payload})
