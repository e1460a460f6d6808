# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Tests for Substrate and EVM signature verification.

Real key material is used for the positive and negative cases. The
injected primitive hooks are used to check scheme fallback order and
that library exceptions are contained.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from app.keypass.exceptions import AddressError, SignatureFormatError
from app.keypass.models import ChainFamily, ErrorCode
from app.keypass.signature import (
    EVMSignatureVerifier,
    SubstrateSignatureVerifier,
    get_signature_verifier,
    substrate_public_key,
)

MESSAGE = "KeyPass Login\nIssued At: 2024-01-01T00:00:00.000Z\nNonce: abc123\nAddress: X"


# =========================================================================
# Signature format
# =========================================================================

class TestSignatureFormat:
    """Shape checks run before any cryptography."""

    def test_substrate_accepts_128_hex_digits(self):
        raw = SubstrateSignatureVerifier().validate_signature_format("0x" + "ab" * 64)
        assert raw == b"\xab" * 64

    def test_evm_accepts_130_hex_digits(self):
        raw = EVMSignatureVerifier().validate_signature_format("0x" + "AB" * 65)
        assert len(raw) == 65

    def test_missing_prefix(self):
        with pytest.raises(SignatureFormatError) as exc_info:
            SubstrateSignatureVerifier().validate_signature_format("ab" * 64)
        assert exc_info.value.code == ErrorCode.INVALID_SIGNATURE_FORMAT

    def test_non_hex(self):
        with pytest.raises(SignatureFormatError) as exc_info:
            EVMSignatureVerifier().validate_signature_format("0x" + "zz" * 65)
        assert exc_info.value.code == ErrorCode.INVALID_SIGNATURE_FORMAT

    def test_trailing_newline_is_format_error(self):
        with pytest.raises(SignatureFormatError) as exc_info:
            SubstrateSignatureVerifier().validate_signature_format("0x" + "ab" * 63 + "a\n")
        assert exc_info.value.code == ErrorCode.INVALID_SIGNATURE_FORMAT

    def test_wrong_length(self):
        with pytest.raises(SignatureFormatError) as exc_info:
            SubstrateSignatureVerifier().validate_signature_format("0x" + "ab" * 65)
        assert exc_info.value.code == ErrorCode.INVALID_SIGNATURE_LENGTH

    def test_evm_length_for_substrate_signature(self):
        with pytest.raises(SignatureFormatError) as exc_info:
            EVMSignatureVerifier().validate_signature_format("0x" + "ab" * 64)
        assert exc_info.value.code == ErrorCode.INVALID_SIGNATURE_LENGTH


# =========================================================================
# Address validation
# =========================================================================

class TestAddressValidation:

    def test_substrate_valid(self, sr25519_account):
        SubstrateSignatureVerifier().validate_address(sr25519_account.address)

    def test_substrate_bad_checksum(self, sr25519_account):
        address = sr25519_account.address
        corrupted = address[:-1] + ("A" if address[-1] != "A" else "B")
        with pytest.raises(AddressError) as exc_info:
            SubstrateSignatureVerifier().validate_address(corrupted)
        assert exc_info.value.code == ErrorCode.INVALID_ADDRESS

    def test_substrate_rejects_evm_address(self, evm_account):
        with pytest.raises(AddressError):
            SubstrateSignatureVerifier().validate_address(evm_account.address)

    def test_evm_valid(self, evm_account):
        EVMSignatureVerifier().validate_address(evm_account.address)

    def test_evm_rejects_short(self):
        with pytest.raises(AddressError):
            EVMSignatureVerifier().validate_address("0x1234")

    def test_public_key_extracted(self, sr25519_account):
        assert substrate_public_key(sr25519_account.address) == sr25519_account.public_key


# =========================================================================
# Substrate verification
# =========================================================================

class TestSubstrateVerify:
    """sr25519 first, ed25519 second, raw or <Bytes>-wrapped payload."""

    def test_sr25519_signature(self, sr25519_account):
        verifier = SubstrateSignatureVerifier()
        assert verifier.verify(MESSAGE, sr25519_account.sign(MESSAGE), sr25519_account.address)

    def test_ed25519_signature(self, ed25519_account):
        verifier = SubstrateSignatureVerifier()
        assert verifier.verify(MESSAGE, ed25519_account.sign(MESSAGE), ed25519_account.address)

    def test_wrapped_payload(self, ed25519_account):
        """Signatures over <Bytes>message</Bytes> are accepted."""
        signature = ed25519_account.sign(f"<Bytes>{MESSAGE}</Bytes>")
        assert SubstrateSignatureVerifier().verify(MESSAGE, signature, ed25519_account.address)

    def test_other_message_rejected(self, sr25519_account):
        signature = sr25519_account.sign(MESSAGE)
        assert not SubstrateSignatureVerifier().verify(MESSAGE + "x", signature, sr25519_account.address)

    def test_other_signer_rejected(self, sr25519_account, ed25519_account):
        signature = ed25519_account.sign(MESSAGE)
        assert not SubstrateSignatureVerifier().verify(MESSAGE, signature, sr25519_account.address)

    def test_ed25519_tried_after_sr25519(self, sr25519_account):
        sr = Mock(return_value=False)
        ed = Mock(return_value=True)
        verifier = SubstrateSignatureVerifier(sr25519_verify=sr, ed25519_verify=ed)
        assert verifier.verify(MESSAGE, "0x" + "00" * 64, sr25519_account.address)
        assert sr.call_count == 2  # raw and wrapped
        ed.assert_called_once()

    def test_sr25519_success_skips_ed25519(self, sr25519_account):
        sr = Mock(return_value=True)
        ed = Mock(return_value=True)
        verifier = SubstrateSignatureVerifier(sr25519_verify=sr, ed25519_verify=ed)
        assert verifier.verify(MESSAGE, "0x" + "00" * 64, sr25519_account.address)
        ed.assert_not_called()

    def test_library_exceptions_are_false(self, sr25519_account):
        boom = Mock(side_effect=RuntimeError("bad point"))
        verifier = SubstrateSignatureVerifier(sr25519_verify=boom, ed25519_verify=boom)
        assert verifier.verify(MESSAGE, "0x" + "00" * 64, sr25519_account.address) is False

    def test_undecodable_address_is_false(self):
        assert SubstrateSignatureVerifier().verify(MESSAGE, "0x" + "00" * 64, "not-an-address") is False


# =========================================================================
# EVM verification
# =========================================================================

class TestEVMVerify:

    def test_personal_sign(self, evm_account):
        assert EVMSignatureVerifier().verify(MESSAGE, evm_account.sign(MESSAGE), evm_account.address)

    def test_address_case_ignored(self, evm_account):
        signature = evm_account.sign(MESSAGE)
        assert EVMSignatureVerifier().verify(MESSAGE, signature, evm_account.address.lower())
        assert EVMSignatureVerifier().verify(MESSAGE, signature, "0x" + evm_account.address[2:].upper())

    def test_other_message_rejected(self, evm_account):
        signature = evm_account.sign(MESSAGE)
        assert not EVMSignatureVerifier().verify("other", signature, evm_account.address)

    def test_other_address_rejected(self, evm_account):
        signature = evm_account.sign(MESSAGE)
        assert not EVMSignatureVerifier().verify(MESSAGE, signature, "0x" + "00" * 20)

    def test_unrecoverable_signature_is_false(self, evm_account):
        assert EVMSignatureVerifier().verify(MESSAGE, "0x" + "00" * 65, evm_account.address) is False

    def test_injected_recovery(self):
        recover = Mock(return_value="0xABCDEF0000000000000000000000000000000000")
        verifier = EVMSignatureVerifier(recover_address=recover)
        assert verifier.verify(MESSAGE, "0xsig", "0xabcdef0000000000000000000000000000000000")
        recover.assert_called_once_with(MESSAGE, "0xsig")


class TestVerifierRegistry:

    def test_singletons_per_family(self):
        assert isinstance(get_signature_verifier(ChainFamily.SUBSTRATE), SubstrateSignatureVerifier)
        assert isinstance(get_signature_verifier(ChainFamily.EVM), EVMSignatureVerifier)
        assert get_signature_verifier(ChainFamily.EVM) is get_signature_verifier(ChainFamily.EVM)
