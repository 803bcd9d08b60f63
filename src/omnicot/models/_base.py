"""Base model and enum for CoT records.

Every omnicot record inherits from :class:`CotBaseModel` which is frozen,
ignores unknown keys and accepts both field names and aliases.

String enums inherit from :class:`CotEnum` which matches values
case-insensitively and, when the subclass defines an ``UNKNOWN`` member,
resolves any unmapped value to it instead of raising ``ValueError``.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict

from omnicot.ingestion.normalize import parse_cot_time


def utcnow() -> datetime:
    return datetime.now(UTC)


def _coerce_timestamp(value: Any) -> datetime | None:
    """Accept datetimes as-is (made UTC-aware) and parse CoT time strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    parsed = parse_cot_time(value)
    if parsed is None:
        raise ValueError(f"not a CoT timestamp: {value!r}")
    return parsed


CotTimestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp)]
"""Annotated type that coerces ISO 8601 CoT timestamps to aware UTC datetimes."""


class CotEnum(enum.StrEnum):
    """Base for omnicot string enums."""

    @classmethod
    def _missing_(cls, value: object) -> CotEnum | None:
        if isinstance(value, str):
            folded = value.strip().lower()
            for member in cls:
                if member.value == folded:
                    return member
        # pylint: disable=no-member
        if "UNKNOWN" in cls.__members__:
            unknown: CotEnum = cls.__members__["UNKNOWN"]
            return unknown
        return None

    @classmethod
    def strict(cls, value: object) -> Self:
        """Look up *value* by name or value (case-insensitive) without the UNKNOWN fallback."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            folded = value.strip().lower()
            for member in cls:
                if folded in (member.value, member.name.lower()):
                    return member
        raise ValueError(f"{value!r} is not a valid {cls.__name__}")


class CotBaseModel(BaseModel):
    """Base for omnicot records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
