# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""KeyPass Verifier exceptions mapped to error codes.

Every expected failure of a pipeline stage is raised as a subclass of
:class:`KeyPassError` carrying one :class:`ErrorCode`. The orchestrator
converts them to responses by ``code`` alone.
"""

from typing import Iterable

from app.config import CLOCK_SKEW_SECONDS, MAX_MESSAGE_AGE_SECONDS, MAX_MESSAGE_LENGTH
from app.keypass.models import ErrorCode


class KeyPassError(Exception):
    """Base exception for KeyPass verification errors."""

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class RequestError(KeyPassError):
    """Request body is missing fields or has the wrong shape."""

    def __init__(self, message: str = "Invalid request body"):
        super().__init__(ErrorCode.INVALID_REQUEST, message)


class MessageLengthError(KeyPassError):
    """Challenge message is longer than the protocol allows."""

    def __init__(self, length: int):
        self.length = length
        super().__init__(
            ErrorCode.MESSAGE_TOO_LONG,
            f"Message exceeds maximum length of {MAX_MESSAGE_LENGTH} characters",
        )


class MessageFormatError(KeyPassError):
    """Challenge message violates the login message grammar."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.INVALID_MESSAGE_FORMAT, f"Invalid message format: {message}")

    @classmethod
    def bad_prefix(cls, title: str) -> "MessageFormatError":
        return cls(f'must start with "{title}"')

    @classmethod
    def missing_fields(cls, fields: Iterable[str]) -> "MessageFormatError":
        return cls(f"missing required fields: {', '.join(fields)}")

    @classmethod
    def unexpected_content(cls) -> "MessageFormatError":
        return cls("unexpected content")

    @classmethod
    def bad_order(cls) -> "MessageFormatError":
        return cls("incorrect field order")

    @classmethod
    def bad_timestamp(cls, value: str) -> "MessageFormatError":
        return cls(f"invalid timestamp format: {value!r}")


class TamperError(KeyPassError):
    """Address embedded in the message disagrees with the request address."""

    def __init__(self, message: str = "Message tampering detected: address mismatch"):
        super().__init__(ErrorCode.VERIFICATION_FAILED, message)


class FreshnessError(KeyPassError):
    """Challenge message is outside the accepted freshness window."""

    @classmethod
    def expired(cls, age: float) -> "FreshnessError":
        return cls(
            ErrorCode.MESSAGE_EXPIRED,
            f"Message has expired (age={age:.0f}s, max_age={MAX_MESSAGE_AGE_SECONDS}s)",
        )

    @classmethod
    def future(cls, ahead: float) -> "FreshnessError":
        return cls(
            ErrorCode.MESSAGE_FUTURE,
            f"Message timestamp is in the future (ahead={ahead:.0f}s, max_skew={CLOCK_SKEW_SECONDS}s)",
        )


class ChainRoutingError(KeyPassError):
    """Chain family could not be determined for a request."""

    @classmethod
    def unsupported(cls, chain_type: str) -> "ChainRoutingError":
        return cls(ErrorCode.UNSUPPORTED_CHAIN_TYPE, f"Unsupported chain type: {chain_type}")

    @classmethod
    def unknown_address(cls) -> "ChainRoutingError":
        return cls(ErrorCode.UNKNOWN_ADDRESS_FORMAT, "Unable to determine chain type from address format")


class AddressError(KeyPassError):
    """Address is rejected by the family-specific validator."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.INVALID_ADDRESS, message)


class SignatureFormatError(KeyPassError):
    """Signature string is malformed for its chain family."""

    @classmethod
    def bad_format(cls, reason: str) -> "SignatureFormatError":
        return cls(ErrorCode.INVALID_SIGNATURE_FORMAT, f"Invalid signature format: {reason}")

    @classmethod
    def bad_length(cls, got: int, expected: int) -> "SignatureFormatError":
        return cls(
            ErrorCode.INVALID_SIGNATURE_LENGTH,
            f"Invalid signature length: expected {expected} hex digits, got {got}",
        )


class SignatureInvalidError(KeyPassError):
    """Signature does not verify for the message and address."""

    def __init__(self, message: str = "Verification failed"):
        super().__init__(ErrorCode.VERIFICATION_FAILED, message)


class DIDError(KeyPassError):
    """DID could not be derived from, or decoded back to, an address."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.DID_CREATION_FAILED, message)
