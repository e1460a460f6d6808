# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Wallet signature verification for Substrate and EVM accounts.

Each chain family has one verifier exposing the same interface:
address validation, signature format validation, and a boolean
``verify``. Cryptographic failures of any kind are a plain ``False``;
they never escape ``verify``.

Substrate
---------
Signatures are 64 raw bytes (``0x`` + 128 hex digits). The wire format
does not say which key type produced them, so sr25519 is tried first and
ed25519 second over the same bytes. Browser wallet extensions sign the
message wrapped in ``<Bytes>...</Bytes>``; both the raw and the wrapped
payload are accepted.

EVM
---
Signatures are 65 bytes (``r || s || v``, ``0x`` + 130 hex digits). The
signer is recovered with EIP-191 ``personal_sign`` recovery and compared
to the claimed address case-insensitively.

The primitives (``sr25519_verify``, ``ed25519_verify``,
``recover_address``) are injectable so tests can substitute them.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, Tuple

import pysodium
from eth_account import Account
from eth_account.messages import encode_defunct
from substrateinterface import Keypair, KeypairType
from substrateinterface.utils.ss58 import is_valid_ss58_address, ss58_decode

from app.config import (
    EVM_SIGNATURE_HEX_LENGTH,
    SS58_FORMAT,
    SS58_FORMAT_STRICT,
    SUBSTRATE_SIGNATURE_HEX_LENGTH,
)
from app.keypass.chain import EVM_ADDRESS_PATTERN
from app.keypass.exceptions import AddressError, SignatureFormatError
from app.keypass.models import ChainFamily

logger = logging.getLogger("keypass.signature")

__all__ = [
    "SignatureVerifier",
    "SubstrateSignatureVerifier",
    "EVMSignatureVerifier",
    "get_signature_verifier",
    "substrate_public_key",
]

_HEX_BODY = re.compile(r"^[0-9a-fA-F]*$")

# Raw-bytes wrapping applied by polkadot-js compatible extensions.
_BYTES_WRAP_PREFIX = b"<Bytes>"
_BYTES_WRAP_SUFFIX = b"</Bytes>"

_SUBSTRATE_PUBLIC_KEY_LEN = 32

# (message, signature, public_key) -> bool
SchemeVerify = Callable[[bytes, bytes, bytes], bool]
# (message, signature_hex) -> recovered address
RecoverAddress = Callable[[str, str], str]


# ---------------------------------------------------------------------------
# Primitive adapters
# ---------------------------------------------------------------------------

def _sr25519_verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    keypair = Keypair(
        public_key=public_key,
        ss58_format=SS58_FORMAT,
        crypto_type=KeypairType.SR25519,
    )
    return bool(keypair.verify(message, signature))


def _ed25519_verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    try:
        pysodium.crypto_sign_verify_detached(signature, message, public_key)
    except ValueError:
        return False
    return True


def _recover_personal_sign(message: str, signature: str) -> str:
    return Account.recover_message(encode_defunct(text=message), signature=signature)


def substrate_public_key(address: str) -> bytes:
    """Decode an SS58 address to its raw 32-byte public key.

    Raises:
        ValueError: If the address cannot be decoded or is not a 32-byte
            account id.
    """
    public_key = bytes.fromhex(ss58_decode(address))
    if len(public_key) != _SUBSTRATE_PUBLIC_KEY_LEN:
        raise ValueError(
            f"expected {_SUBSTRATE_PUBLIC_KEY_LEN}-byte account id, got {len(public_key)} bytes"
        )
    return public_key


# ---------------------------------------------------------------------------
# Verifier interface
# ---------------------------------------------------------------------------

class SignatureVerifier(ABC):
    """Chain-family specific signature verifier."""

    family: ChainFamily
    signature_hex_length: int

    def validate_signature_format(self, signature: str) -> bytes:
        """Check the ``0x``-hex shape and length; return the raw bytes.

        Raises:
            SignatureFormatError: ``INVALID_SIGNATURE_FORMAT`` for a missing
                prefix or non-hex characters, ``INVALID_SIGNATURE_LENGTH``
                for the wrong number of hex digits.
        """
        if not signature.startswith("0x"):
            raise SignatureFormatError.bad_format("missing 0x prefix")
        body = signature[2:]
        if not _HEX_BODY.fullmatch(body):
            raise SignatureFormatError.bad_format("non-hex characters")
        if len(body) != self.signature_hex_length:
            raise SignatureFormatError.bad_length(len(body), self.signature_hex_length)
        return bytes.fromhex(body)

    @abstractmethod
    def validate_address(self, address: str) -> None:
        """Raise :class:`AddressError` if *address* is not valid for this family."""

    @abstractmethod
    def verify(self, message: str, signature: str, address: str) -> bool:
        """Return ``True`` iff *signature* over *message* was made by *address*."""


class SubstrateSignatureVerifier(SignatureVerifier):
    family = ChainFamily.SUBSTRATE
    signature_hex_length = SUBSTRATE_SIGNATURE_HEX_LENGTH

    def __init__(
        self,
        sr25519_verify: SchemeVerify = _sr25519_verify,
        ed25519_verify: SchemeVerify = _ed25519_verify,
    ):
        self._schemes: Tuple[Tuple[str, SchemeVerify], ...] = (
            ("sr25519", sr25519_verify),
            ("ed25519", ed25519_verify),
        )

    def validate_address(self, address: str) -> None:
        valid_format = SS58_FORMAT if SS58_FORMAT_STRICT else None
        if not is_valid_ss58_address(address, valid_ss58_format=valid_format):
            raise AddressError("Invalid Polkadot address")
        try:
            substrate_public_key(address)
        except ValueError as exc:
            raise AddressError(f"Invalid Polkadot address: {exc}") from exc

    def verify(self, message: str, signature: str, address: str) -> bool:
        try:
            public_key = substrate_public_key(address)
            signature_bytes = bytes.fromhex(signature[2:] if signature.startswith("0x") else signature)
        except ValueError as exc:
            logger.debug("Substrate verification input rejected: %s", exc)
            return False

        raw = message.encode("utf-8")
        payloads = (raw, _BYTES_WRAP_PREFIX + raw + _BYTES_WRAP_SUFFIX)

        for scheme, verify_fn in self._schemes:
            for payload in payloads:
                try:
                    if verify_fn(payload, signature_bytes, public_key):
                        logger.debug("Substrate signature verified with %s", scheme)
                        return True
                except Exception as exc:
                    logger.debug("%s verification raised: %s", scheme, exc)
        return False


class EVMSignatureVerifier(SignatureVerifier):
    family = ChainFamily.EVM
    signature_hex_length = EVM_SIGNATURE_HEX_LENGTH

    def __init__(self, recover_address: RecoverAddress = _recover_personal_sign):
        self._recover = recover_address

    def validate_address(self, address: str) -> None:
        if not EVM_ADDRESS_PATTERN.fullmatch(address):
            raise AddressError("Invalid Ethereum address")

    def verify(self, message: str, signature: str, address: str) -> bool:
        try:
            recovered = self._recover(message, signature)
        except Exception as exc:
            logger.debug("EVM signature recovery raised: %s", exc)
            return False
        return str(recovered).lower() == address.lower()


# ---------------------------------------------------------------------------
# Stateless singletons
# ---------------------------------------------------------------------------

_VERIFIERS: Dict[ChainFamily, SignatureVerifier] = {
    ChainFamily.SUBSTRATE: SubstrateSignatureVerifier(),
    ChainFamily.EVM: EVMSignatureVerifier(),
}


def get_signature_verifier(family: ChainFamily) -> SignatureVerifier:
    """Return the shared verifier for *family*."""
    return _VERIFIERS[family]
