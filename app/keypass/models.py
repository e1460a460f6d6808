# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""KeyPass Verifier API models: request, response, error codes, DID documents."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Chain families
# =============================================================================

class ChainFamily(str, Enum):
    """Chain families served by the verifier.

    Values are the names used on the wire (``chainType``).
    """

    SUBSTRATE = "polkadot"
    EVM = "ethereum"


# =============================================================================
# Error codes
# =============================================================================

class ErrorCode(str, Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"
    INVALID_MESSAGE_FORMAT = "INVALID_MESSAGE_FORMAT"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    MESSAGE_EXPIRED = "MESSAGE_EXPIRED"
    MESSAGE_FUTURE = "MESSAGE_FUTURE"
    UNSUPPORTED_CHAIN_TYPE = "UNSUPPORTED_CHAIN_TYPE"
    UNKNOWN_ADDRESS_FORMAT = "UNKNOWN_ADDRESS_FORMAT"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_SIGNATURE_FORMAT = "INVALID_SIGNATURE_FORMAT"
    INVALID_SIGNATURE_LENGTH = "INVALID_SIGNATURE_LENGTH"
    DID_CREATION_FAILED = "DID_CREATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


SUCCESS_CODE = "SUCCESS"


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# Request / Response
# =============================================================================

class VerificationRequest(BaseModel):
    """Signed-challenge verification request.

    ``chain_type`` travels as ``chainType`` on the wire. It accepts any
    JSON value so that unknown values, strings or not, reach the router
    and are reported as ``UNSUPPORTED_CHAIN_TYPE`` rather than as a
    schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    signature: str
    address: str
    chain_type: Optional[Any] = Field(default=None, alias="chainType")


class VerificationResponse(BaseModel):
    status: ResponseStatus
    message: str
    code: str
    did: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def success(
        cls,
        did: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> "VerificationResponse":
        return cls(
            status=ResponseStatus.SUCCESS,
            message="Verification successful",
            code=SUCCESS_CODE,
            did=did,
            data=data,
        )

    @classmethod
    def error(cls, code: str, message: str) -> "VerificationResponse":
        return cls(status=ResponseStatus.ERROR, message=message, code=str(code))

    @property
    def is_success(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the wire, omitting absent optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# DID Document (W3C DID Core subset)
# =============================================================================

class VerificationMethod(BaseModel):
    id: str
    type: str
    controller: str
    publicKeyMultibase: str


class DIDDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    context: List[str] = Field(alias="@context")
    id: str
    controller: str
    verificationMethod: List[VerificationMethod]
    authentication: List[str]
    assertionMethod: List[str]
    keyAgreement: List[str] = Field(default_factory=list)
    capabilityInvocation: List[str]
    capabilityDelegation: List[str]
    service: List[str] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
