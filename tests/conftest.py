# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Shared test fixtures for the KeyPass Verifier test suite.

Provides signing accounts for each supported key type and a factory
for login challenge messages. All accounts use real key material:
sr25519 via substrate-interface, ed25519 via pysodium and secp256k1
via eth-account.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pysodium
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from substrateinterface import Keypair
from substrateinterface.utils.ss58 import ss58_encode

from app.keypass.challenge import format_issued_at, rebuild_message

# Well-known development account //Alice (generic Substrate prefix 42).
ALICE_ADDRESS = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"

# Deterministic secp256k1 test key; never holds funds.
EVM_PRIVATE_KEY = "0x" + "4c" * 32

ED25519_SEED = bytes(range(32))


@dataclass
class SigningAccount:
    """An address plus a function that signs text messages for it.

    ``sign`` returns the ``0x``-prefixed hex signature in the format a
    wallet would submit.
    """

    address: str
    sign: Callable[[str], str]
    public_key: Optional[bytes] = None


# =========================================================================
# Accounts
# =========================================================================

@pytest.fixture
def sr25519_account() -> SigningAccount:
    """The //Alice development account (sr25519)."""
    keypair = Keypair.create_from_uri("//Alice")

    def sign(message: str) -> str:
        return "0x" + keypair.sign(message.encode("utf-8")).hex()

    return SigningAccount(keypair.ss58_address, sign, keypair.public_key)


@pytest.fixture
def ed25519_account() -> SigningAccount:
    """A deterministic ed25519 Substrate account (libsodium keys)."""
    pk, sk = pysodium.crypto_sign_seed_keypair(ED25519_SEED)

    def sign(message: str) -> str:
        return "0x" + pysodium.crypto_sign_detached(message.encode("utf-8"), sk).hex()

    return SigningAccount(ss58_encode(pk, ss58_format=42), sign, pk)


@pytest.fixture
def evm_account() -> SigningAccount:
    """A deterministic EVM account signing with EIP-191 personal_sign."""
    account = Account.from_key(EVM_PRIVATE_KEY)

    def sign(message: str) -> str:
        signed = Account.sign_message(encode_defunct(text=message), private_key=EVM_PRIVATE_KEY)
        return "0x" + bytes(signed.signature).hex()

    return SigningAccount(account.address, sign)


# =========================================================================
# Challenge messages
# =========================================================================

@pytest.fixture
def make_message() -> Callable[..., str]:
    """Factory fixture: render a login challenge for an address.

    Keyword arguments:
        age: Seconds before now the challenge was issued (negative for
            a future timestamp). Default 0.
        nonce: Nonce text. Default ``"abc123"``.
        issued_at: Explicit timestamp text; overrides ``age``.
    """

    def _make(
        address: str,
        *,
        age: float = 0,
        nonce: str = "abc123",
        issued_at: Optional[str] = None,
    ) -> str:
        if issued_at is None:
            issued_at = format_issued_at(datetime.now(timezone.utc) - timedelta(seconds=age))
        return rebuild_message(address, nonce, issued_at)

    return _make


@pytest.fixture
def make_request(make_message) -> Callable[..., dict]:
    """Factory fixture: build a signed verification request body.

    ``chain_type`` is included as ``chainType`` when given. Extra keyword
    arguments are passed to ``make_message``.
    """

    def _make(account: SigningAccount, chain_type: Optional[str] = None, **kwargs) -> dict:
        message = make_message(account.address, **kwargs)
        body = {
            "message": message,
            "signature": account.sign(message),
            "address": account.address,
        }
        if chain_type is not None:
            body["chainType"] = chain_type
        return body

    return _make
