# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Interval algebra for reservation windows.

Every reservation occupies a half-open interval [start, end): the start
instant is included and the end instant is not, so a booking that ends at
12:00 and another that starts at 12:00 do not conflict.

All functions here are pure. Instants are timezone-aware UTC datetimes.
"""

import math
import re
from datetime import datetime, timedelta, timezone

from .exceptions import ValidationError

_LOCATION_CODE_RE = re.compile(r"[0-9]{6}")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_US = timedelta(microseconds=1)


def overlaps(
    start1: datetime, end1: datetime, start2: datetime, end2: datetime
) -> bool:
    """Return True if [start1, end1) and [start2, end2) share an instant."""
    return start1 < end2 and start2 < end1


def compute_end(start: datetime, duration_hours: float) -> datetime:
    """
    Compute the end of a window from its start and duration.

    Args:
        start: Window start
        duration_hours: Positive duration in hours

    Raises:
        ValidationError: If the duration is not a positive finite number
    """
    if (
        isinstance(duration_hours, bool)
        or not isinstance(duration_hours, (int, float))
        or not math.isfinite(duration_hours)
        or duration_hours <= 0
    ):
        raise ValidationError(
            f"Duration must be a positive number of hours, got {duration_hours!r}",
            field="duration_hours",
        )
    return start + timedelta(hours=duration_hours)


def validate_location_code(code: object, field: str = "pincode") -> str:
    """
    Validate a 6-digit location code (pincode).

    Returns:
        The code, unchanged

    Raises:
        ValidationError: If the code is missing or not exactly six ASCII digits
    """
    if not isinstance(code, str) or not _LOCATION_CODE_RE.fullmatch(code):
        raise ValidationError("Pincodes must be exactly 6 digits", field=field)
    return code


def validate_capacity(capacity_kg: object, field: str = "capacity_kg") -> float:
    """Validate a requested load as a positive finite number of kilograms."""
    if (
        isinstance(capacity_kg, bool)
        or not isinstance(capacity_kg, (int, float))
        or not math.isfinite(capacity_kg)
        or capacity_kg <= 0
    ):
        raise ValidationError(f"{field} must be a positive number", field=field)
    return float(capacity_kg)


def parse_instant(value: object, field: str = "start_time") -> datetime:
    """
    Normalise an instant to an aware UTC datetime.

    Accepts datetimes (naive values are read as UTC) and ISO 8601 strings,
    including the trailing "Z" form (e.g. 2023-10-27T10:00:00Z).

    Raises:
        ValidationError: If the value is missing or cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(
                f"Invalid {field} format. Use ISO date format "
                "(e.g., 2023-10-27T10:00:00Z)",
                field=field,
            ) from None
    else:
        raise ValidationError(f"{field} is required", field=field)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def validate_future(start: datetime, now: datetime, field: str = "start_time") -> None:
    """Reject instants that are not strictly after ``now``."""
    if start <= now:
        raise ValidationError("Start time must be in the future", field=field)


def validate_booking_time(
    start: datetime,
    now: datetime,
    max_advance: timedelta = timedelta(days=365),
) -> None:
    """
    Check that a booking start lies in (now, now + max_advance].

    Raises:
        ValidationError: If the start is not in the future, or too far ahead
    """
    validate_future(start, now)
    if start > now + max_advance:
        raise ValidationError(
            "Cannot book more than 1 year in advance", field="start_time"
        )


def to_epoch_us(instant: datetime) -> int:
    """Convert an aware datetime to integer microseconds since the epoch."""
    return (instant - _EPOCH) // _ONE_US


def from_epoch_us(value: int | str) -> datetime:
    """Inverse of to_epoch_us(); accepts the string form Redis returns."""
    return _EPOCH + timedelta(microseconds=int(value))
