"""Base model for control server payloads.

Every response model inherits from :class:`RmbtBaseModel` which provides:

* a ``model_validator(mode="before")`` that drops ``None`` and empty-string
  values so the field default is used,
* optional per-model key aliases for the few camelCase or legacy keys the
  control server still emits,
* a ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RmbtBaseModel(BaseModel):
    """Base for control server response models."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original server payload."""

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values, apply key aliases, and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = RmbtBaseModel._clean_dict(original, getattr(cls, "_KEY_ALIASES", {}))
        # Keep an explicitly passed raw= when constructing from kwargs.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned


def first_entry(payload: Any, key: str) -> dict[str, Any]:
    """Return ``payload[key][0]`` for the control server's list-wrapped objects.

    Several endpoints answer ``{"<key>": [{...}]}``; anything else yields
    an empty dict.
    """
    if not isinstance(payload, dict):
        return {}
    items = payload.get(key)
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    if isinstance(items, dict):
        return items
    return {}
