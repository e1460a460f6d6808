# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Replay protection for login challenges.

A challenge is fresh while it is at most MAX_MESSAGE_AGE_SECONDS old and
at most CLOCK_SKEW_SECONDS ahead of the local clock. Both bounds are
inclusive: only strictly larger deviations fail.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.config import CLOCK_SKEW_SECONDS, MAX_MESSAGE_AGE_SECONDS
from app.keypass.exceptions import FreshnessError

__all__ = ["message_age_seconds", "validate_freshness"]


def message_age_seconds(issued_at: datetime, now: Optional[datetime] = None) -> float:
    """Seconds elapsed since *issued_at*; negative when it lies in the future."""
    if now is None:
        now = datetime.now(timezone.utc)
    return (now - issued_at).total_seconds()


def validate_freshness(issued_at: datetime, *, now: Optional[datetime] = None) -> None:
    """Reject challenges that are too old or too far in the future.

    Raises:
        FreshnessError: ``MESSAGE_EXPIRED`` or ``MESSAGE_FUTURE``.
    """
    age = message_age_seconds(issued_at, now)
    if age > MAX_MESSAGE_AGE_SECONDS:
        raise FreshnessError.expired(age)
    if -age > CLOCK_SKEW_SECONDS:
        raise FreshnessError.future(-age)
