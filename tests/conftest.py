from __future__ import annotations

import pytest
from _fakes import FakeTransport, settings_payload

from pyrmbt.config import RmbtConfig


@pytest.fixture
def config() -> RmbtConfig:
    return RmbtConfig(base_url="https://control.example/RMBTControlServer")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport({"settings": settings_payload()})
