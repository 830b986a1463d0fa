"""News items pushed by the control server."""

from __future__ import annotations

from pyrmbt.models._base import RmbtBaseModel


class NewsItem(RmbtBaseModel):
    """A single news entry to show once to the user."""

    uid: int
    title: str = ""
    text: str = ""
