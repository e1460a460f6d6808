# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""KeyPass verification orchestrator.

Runs a signed-challenge request through the verification stages in a
fixed order and converts the outcome into a :class:`VerificationResponse`:

1. Request shape: ``message``, ``signature`` and ``address`` are
   non-empty strings.
2. Message length.
3. Message grammar, including the embedded-address tamper check.
4. Freshness of ``Issued At``.
5. Chain family resolution (unified service only).
6. Address format for the family.
7. Signature format for the family.
8. Signature verification.
9. DID derivation.

The first failing stage decides the error code. Expected failures are
:class:`KeyPassError` subclasses and are mapped by their ``code``;
anything else is logged with its traceback and reported as
``INTERNAL_ERROR`` with a generic message.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from app.keypass.chain import resolve_chain_family
from app.keypass.did import get_did_provider
from app.keypass.exceptions import KeyPassError, RequestError, SignatureInvalidError
from app.keypass.freshness import message_age_seconds, validate_freshness
from app.keypass.message import check_message_length, validate_message_format
from app.keypass.models import (
    ChainFamily,
    ErrorCode,
    VerificationRequest,
    VerificationResponse,
)
from app.keypass.signature import get_signature_verifier

logger = logging.getLogger("keypass.verify")

__all__ = ["VerificationService", "verify_signature"]

RequestLike = Union[VerificationRequest, Mapping[str, Any]]

_INTERNAL_ERROR_MESSAGE = "Internal verification error"
_DID_FAILURE_MESSAGE = "Failed to create DID"


def _parse_request(request: Any) -> VerificationRequest:
    """Coerce *request* into a :class:`VerificationRequest`.

    Raises:
        RequestError: If the body is not an object, a field has the wrong
            type, or a required field is blank.
    """
    if isinstance(request, VerificationRequest):
        parsed = request
    elif isinstance(request, Mapping):
        try:
            parsed = VerificationRequest.model_validate(dict(request))
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            if fields:
                raise RequestError(f"Invalid request body: {', '.join(fields)}") from exc
            raise RequestError() from exc
    else:
        raise RequestError("Invalid request body: expected a JSON object")

    blank = [
        name for name in ("message", "signature", "address")
        if not getattr(parsed, name).strip()
    ]
    if blank:
        raise RequestError(f"Missing required fields: {', '.join(blank)}")
    return parsed


class VerificationService:
    """Verifies signed login challenges and derives the account DID.

    Parameters:
        family: Pin the service to one chain family. ``None`` (default)
            gives the unified service, which resolves the family per
            request and reports it as ``data.chainType`` on success.
            A pinned service ignores any ``chainType`` in the request.
    """

    def __init__(self, family: Optional[ChainFamily] = None):
        self.family = family

    @property
    def is_unified(self) -> bool:
        return self.family is None

    def verify_signature(
        self,
        request: RequestLike,
        *,
        now: Optional[datetime] = None,
    ) -> VerificationResponse:
        """Verify *request*. Never raises."""
        try:
            return self._run(request, now)
        except KeyPassError as exc:
            logger.info("Verification rejected: code=%s", exc.code.value)
            return VerificationResponse.error(exc.code.value, exc.message)
        except Exception:
            logger.exception("Unexpected error during verification")
            return VerificationResponse.error(ErrorCode.INTERNAL_ERROR.value, _INTERNAL_ERROR_MESSAGE)

    def _run(self, request: RequestLike, now: Optional[datetime]) -> VerificationResponse:
        parsed = _parse_request(request)

        check_message_length(parsed.message)
        challenge = validate_message_format(parsed.message, parsed.address)
        validate_freshness(challenge.issued_at, now=now)

        family = self.family or resolve_chain_family(parsed.address, parsed.chain_type)
        verifier = get_signature_verifier(family)
        verifier.validate_address(parsed.address)
        verifier.validate_signature_format(parsed.signature)

        if not verifier.verify(parsed.message, parsed.signature, parsed.address):
            raise SignatureInvalidError()

        did = self._derive_did(family, parsed.address)

        logger.info(
            "Verification succeeded: chain=%s age=%.0fs",
            family.value, message_age_seconds(challenge.issued_at, now),
        )
        data = {"chainType": family.value} if self.is_unified else None
        return VerificationResponse.success(did, data=data)

    @staticmethod
    def _derive_did(family: ChainFamily, address: str) -> str:
        try:
            return get_did_provider(family).create_did(address)
        except Exception as exc:
            logger.warning("DID derivation failed for verified %s account: %s", family.value, exc)
            raise KeyPassError(ErrorCode.DID_CREATION_FAILED, _DID_FAILURE_MESSAGE) from exc


_unified_service = VerificationService()


def verify_signature(request: RequestLike) -> VerificationResponse:
    """Verify *request* with the unified (multi-chain) service."""
    return _unified_service.verify_signature(request)
