# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Login challenge message parser.

Validates the four-line challenge text a wallet signs::

    KeyPass Login
    Issued At: <ISO-8601 timestamp>
    Nonce: <opaque token>
    Address: <claimed address>

and cross-checks the embedded address against the address claimed by
the request. A disagreement there is reported as tampering rather than
as a format problem, because the message and the request then disagree
about who is signing in.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.config import LOGIN_MESSAGE_TITLE, MAX_MESSAGE_LENGTH
from app.keypass.chain import EVM_ADDRESS_PATTERN
from app.keypass.exceptions import MessageFormatError, MessageLengthError, TamperError

__all__ = [
    "ChallengeMessage",
    "ISSUED_AT_FIELD",
    "NONCE_FIELD",
    "ADDRESS_FIELD",
    "check_message_length",
    "parse_timestamp",
    "validate_message_format",
]

ISSUED_AT_FIELD = "Issued At:"
NONCE_FIELD = "Nonce:"
ADDRESS_FIELD = "Address:"

_REQUIRED_FIELDS = (ISSUED_AT_FIELD, NONCE_FIELD, ADDRESS_FIELD)
_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass(frozen=True)
class ChallengeMessage:
    """Parsed login challenge.

    Attributes:
        issued_at:  Issue time as an aware UTC datetime.
        issued_at_raw:  The timestamp exactly as written in the message.
        nonce:  Opaque nonce token.
        address:  Address embedded in the message.
    """

    issued_at: datetime
    issued_at_raw: str
    nonce: str
    address: str


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _split_lines(message: str) -> List[str]:
    """Split on line breaks, trim each line and drop blank ones."""
    return [line.strip() for line in _LINE_SPLIT.split(message) if line.strip()]


def _field_value(line: str) -> str:
    """Return the text after the first colon, trimmed."""
    return line[line.index(":") + 1:].strip()


def _addresses_match(embedded: str, expected: str, case_insensitive: Optional[bool]) -> bool:
    if case_insensitive is None:
        case_insensitive = bool(EVM_ADDRESS_PATTERN.fullmatch(expected))
    if case_insensitive:
        return embedded.lower() == expected.lower()
    return embedded == expected


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 / RFC 3339 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted. Timestamps without an offset are taken
    to be UTC.

    Raises:
        ValueError: If *value* is not a valid timestamp.
        OverflowError: If the UTC equivalent falls outside the datetime range.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def check_message_length(message: str) -> None:
    """Reject messages longer than MAX_MESSAGE_LENGTH characters."""
    if len(message) > MAX_MESSAGE_LENGTH:
        raise MessageLengthError(len(message))


def validate_message_format(
    message: str,
    expected_address: str,
    *,
    case_insensitive: Optional[bool] = None,
) -> ChallengeMessage:
    """Validate a login challenge and return its parsed fields.

    Parameters:
        message: The signed challenge text.
        expected_address: The address claimed by the request.
        case_insensitive: Compare addresses ignoring case. When ``None``
            the choice follows the expected address: EVM-shaped addresses
            compare case-insensitively, everything else exactly.

    Returns:
        A :class:`ChallengeMessage`.

    Raises:
        MessageFormatError: On any grammar violation.
        TamperError: If the embedded address differs from *expected_address*.
    """
    if not message.startswith(LOGIN_MESSAGE_TITLE):
        raise MessageFormatError.bad_prefix(LOGIN_MESSAGE_TITLE)

    lines = _split_lines(message)

    missing = [f for f in _REQUIRED_FIELDS if not any(line.startswith(f) for line in lines)]
    if missing:
        raise MessageFormatError.missing_fields(missing)

    if len(lines) != len(_REQUIRED_FIELDS) + 1:
        raise MessageFormatError.unexpected_content()

    if (
        lines[0] != LOGIN_MESSAGE_TITLE
        or not lines[1].startswith(ISSUED_AT_FIELD)
        or not lines[2].startswith(NONCE_FIELD)
        or not lines[3].startswith(ADDRESS_FIELD)
    ):
        raise MessageFormatError.bad_order()

    values: Dict[str, str] = {
        field: _field_value(line) for field, line in zip(_REQUIRED_FIELDS, lines[1:])
    }
    empty = [field for field, value in values.items() if not value]
    if empty:
        raise MessageFormatError.missing_fields(empty)

    issued_at_raw = values[ISSUED_AT_FIELD]
    try:
        issued_at = parse_timestamp(issued_at_raw)
    except (ValueError, OverflowError) as exc:
        raise MessageFormatError.bad_timestamp(issued_at_raw) from exc

    address = values[ADDRESS_FIELD]
    if not _addresses_match(address, expected_address, case_insensitive):
        raise TamperError()

    return ChallengeMessage(
        issued_at=issued_at,
        issued_at_raw=issued_at_raw,
        nonce=values[NONCE_FIELD],
        address=address,
    )
