# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Deterministic ``did:key`` derivation for verified accounts.

A DID is a pure function of the account address, so the same address
always yields the same DID and DID Document and nothing needs to be
stored.

Substrate
    The SS58 address is decoded to its 32-byte public key, which is
    base58btc-encoded and given the multibase prefix ``z``::

        did:key:z<base58(public_key)>

EVM
    The lowercase 20 address bytes are base64-encoded, ``/``, ``+`` and
    ``=`` are removed, and the result is given the prefix ``z``::

        did:key:z<base64(address_bytes) without / + =>

    Decoding re-pads the base64 text. Addresses whose base64 form
    contains ``/`` or ``+`` therefore cannot be decoded back; their DIDs
    are still stable and distinct.

Verification method ids are ``<did>#<first 8 chars of publicKeyMultibase>``.
"""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import base58
from substrateinterface.utils.ss58 import ss58_encode

from app.config import DID_KEY_PREFIX, MULTIBASE_BASE58BTC, SS58_FORMAT
from app.keypass.chain import EVM_ADDRESS_PATTERN
from app.keypass.exceptions import AddressError, DIDError
from app.keypass.models import ChainFamily, DIDDocument, VerificationMethod
from app.keypass.signature import get_signature_verifier, substrate_public_key

__all__ = [
    "DIDProvider",
    "SubstrateDIDProvider",
    "EVMDIDProvider",
    "get_did_provider",
    "resolve_did",
    "SR25519_VERIFICATION_KEY_2020",
    "ECDSA_SECP256K1_VERIFICATION_KEY_2019",
]

SR25519_VERIFICATION_KEY_2020 = "Sr25519VerificationKey2020"
ECDSA_SECP256K1_VERIFICATION_KEY_2019 = "EcdsaSecp256k1VerificationKey2019"

_DID_CORE_CONTEXT = "https://www.w3.org/ns/did/v1"

_FRAGMENT_LEN = 8


class DIDProvider(ABC):
    """Derives and resolves ``did:key`` identifiers for one chain family."""

    family: ChainFamily
    context: List[str]
    verification_method_type: str

    @abstractmethod
    def encode_key(self, address: str) -> str:
        """Return the multibase body (without ``z``) for a valid *address*."""

    @abstractmethod
    def extract_address(self, did: str) -> str:
        """Recover the account address from *did*."""

    def validate_address(self, address: str) -> None:
        get_signature_verifier(self.family).validate_address(address)

    def multibase_key(self, address: str) -> str:
        return MULTIBASE_BASE58BTC + self.encode_key(address)

    def create_did(self, address: str) -> str:
        """Create the DID for *address*.

        Raises:
            AddressError: If *address* is not valid for this family.
            DIDError: If the address cannot be encoded.
        """
        self.validate_address(address)
        return DID_KEY_PREFIX + self.multibase_key(address)

    def create_did_document(self, address: str) -> DIDDocument:
        """Build the DID Document for *address*.

        The document carries a single verification method that every
        verification relationship except key agreement refers to.
        """
        did = self.create_did(address)
        key = self.multibase_key(address)
        method = VerificationMethod(
            id=f"{did}#{key[:_FRAGMENT_LEN]}",
            type=self.verification_method_type,
            controller=did,
            publicKeyMultibase=key,
        )
        return DIDDocument(
            context=list(self.context),
            id=did,
            controller=did,
            verificationMethod=[method],
            authentication=[method.id],
            assertionMethod=[method.id],
            keyAgreement=[],
            capabilityInvocation=[method.id],
            capabilityDelegation=[method.id],
            service=[],
        )

    def resolve(self, did: str) -> DIDDocument:
        """Resolve *did* to its DID Document.

        Raises:
            DIDError: If the DID is malformed or does not decode to an
                address of this family.
        """
        address = self.extract_address(did)
        try:
            return self.create_did_document(address)
        except AddressError as exc:
            raise DIDError(f"DID does not encode a valid address: {exc.message}") from exc

    def _multibase_body(self, did: str) -> str:
        """Strip ``did:key:`` and the base58btc marker from *did*."""
        if not did.startswith(DID_KEY_PREFIX):
            raise DIDError("Invalid DID format: expected did:key method")
        multibase_key = did[len(DID_KEY_PREFIX):]
        if not multibase_key.startswith(MULTIBASE_BASE58BTC):
            raise DIDError("Invalid DID format: expected base58btc multibase prefix 'z'")
        body = multibase_key[len(MULTIBASE_BASE58BTC):]
        if not body:
            raise DIDError("Invalid DID format: empty key")
        return body


class SubstrateDIDProvider(DIDProvider):
    family = ChainFamily.SUBSTRATE
    context = [_DID_CORE_CONTEXT, "https://w3id.org/security/suites/sr25519-2020/v1"]
    verification_method_type = SR25519_VERIFICATION_KEY_2020

    def __init__(self, ss58_format: int = SS58_FORMAT):
        self.ss58_format = ss58_format

    def encode_key(self, address: str) -> str:
        try:
            public_key = substrate_public_key(address)
        except ValueError as exc:
            raise DIDError(f"Failed to decode address: {exc}") from exc
        return base58.b58encode(public_key).decode("ascii")

    def extract_address(self, did: str) -> str:
        body = self._multibase_body(did)
        try:
            public_key = base58.b58decode(body)
        except ValueError as exc:
            raise DIDError(f"Invalid DID format: {exc}") from exc
        if len(public_key) != 32:
            raise DIDError(f"Invalid DID format: expected 32-byte key, got {len(public_key)} bytes")
        try:
            return ss58_encode(public_key, ss58_format=self.ss58_format)
        except (ValueError, TypeError) as exc:
            raise DIDError(f"Failed to encode address: {exc}") from exc


class EVMDIDProvider(DIDProvider):
    family = ChainFamily.EVM
    context = [_DID_CORE_CONTEXT, "https://w3id.org/security/suites/secp256k1-2019/v1"]
    verification_method_type = ECDSA_SECP256K1_VERIFICATION_KEY_2019

    def encode_key(self, address: str) -> str:
        try:
            address_bytes = bytes.fromhex(address.lower()[2:])
        except ValueError as exc:
            raise DIDError(f"Failed to decode address: {exc}") from exc
        encoded = base64.b64encode(address_bytes).decode("ascii")
        return encoded.replace("/", "").replace("+", "").replace("=", "")

    def extract_address(self, did: str) -> str:
        body = self._multibase_body(did)
        padded = body + "=" * (-len(body) % 4)
        try:
            address_bytes = base64.b64decode(padded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DIDError(f"Invalid DID format: {exc}") from exc
        address = "0x" + address_bytes.hex()
        if not EVM_ADDRESS_PATTERN.fullmatch(address):
            raise DIDError("Invalid DID format: does not encode a 20-byte address")
        return address.lower()


# ---------------------------------------------------------------------------
# Stateless singletons
# ---------------------------------------------------------------------------

_PROVIDERS: Dict[ChainFamily, DIDProvider] = {
    ChainFamily.SUBSTRATE: SubstrateDIDProvider(),
    ChainFamily.EVM: EVMDIDProvider(),
}


def get_did_provider(family: ChainFamily) -> DIDProvider:
    """Return the shared DID provider for *family*."""
    return _PROVIDERS[family]


def resolve_did(did: str, family: Optional[ChainFamily] = None) -> Tuple[ChainFamily, DIDDocument]:
    """Resolve *did*, trying every family in turn when none is given.

    Substrate and EVM key bodies decode to 32 and 20 bytes respectively,
    so at most one family accepts a given DID.

    Raises:
        DIDError: If no candidate family can resolve the DID.
    """
    candidates = [family] if family is not None else list(_PROVIDERS)
    failures: List[DIDError] = []
    for candidate in candidates:
        try:
            return candidate, get_did_provider(candidate).resolve(did)
        except DIDError as exc:
            failures.append(exc)
    raise failures[-1]
