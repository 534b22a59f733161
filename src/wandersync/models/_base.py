"""Base model and enum for trip documents.

Every wire model inherits from :class:`TripBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase document keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops JSON ``null`` values
  so the field default is used (remote stores write ``null`` for cleared
  optional fields).
* ``to_wire`` for the camelCase JSON shape stored locally and remotely.

Category enums inherit from :class:`TripEnum` which maps any value
without a member to a declared fallback instead of raising ``ValueError``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns ``None`` when *value* is empty or not parseable. Naive values
    are assumed to be UTC.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class TripEnum(StrEnum):
    """Base for document enums.

    Matching is case-insensitive. Values without a member resolve to
    ``_fallback()`` (the first member unless a subclass overrides it)
    instead of failing validation.
    """

    @classmethod
    def _fallback(cls) -> TripEnum:
        return next(iter(cls))

    @classmethod
    def _missing_(cls, value: object) -> TripEnum:
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().upper():
                    return member
        return cls._fallback()


class TripBaseModel(BaseModel):
    """Base for trip document models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON-compatible dict used on disk and on the wire."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
