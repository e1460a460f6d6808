# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Tests for chain family detection and routing."""

from __future__ import annotations

import pytest

from app.keypass.chain import detect_chain_family, resolve_chain_family
from app.keypass.exceptions import ChainRoutingError
from app.keypass.models import ChainFamily, ErrorCode

SUBSTRATE_ADDRESS = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
EVM_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


class TestDetectChainFamily:
    """Address shape alone decides the family."""

    def test_evm(self):
        assert detect_chain_family(EVM_ADDRESS) == ChainFamily.EVM

    def test_substrate(self):
        assert detect_chain_family(SUBSTRATE_ADDRESS) == ChainFamily.SUBSTRATE

    @pytest.mark.parametrize(
        "address",
        [
            "",
            "0x1234",
            "0x742d35Cc6634C0532925a3b844Bc454e4438f44g",
            "5Grwva",
            # Base58 excludes 0, O, I and l.
            "0GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY",
        ],
    )
    def test_unknown(self, address):
        assert detect_chain_family(address) is None

    @pytest.mark.parametrize("address", [EVM_ADDRESS + "\n", SUBSTRATE_ADDRESS + "\n"])
    def test_trailing_newline_rejected(self, address):
        assert detect_chain_family(address) is None


class TestResolveChainFamily:
    """An explicit chainType wins over the address shape."""

    def test_inferred_without_hint(self):
        assert resolve_chain_family(EVM_ADDRESS) == ChainFamily.EVM
        assert resolve_chain_family(SUBSTRATE_ADDRESS, None) == ChainFamily.SUBSTRATE

    def test_empty_hint_treated_as_absent(self):
        assert resolve_chain_family(EVM_ADDRESS, "") == ChainFamily.EVM

    def test_hint_not_cross_checked(self):
        """The hint is used even if the address has the other shape."""
        assert resolve_chain_family(SUBSTRATE_ADDRESS, "ethereum") == ChainFamily.EVM

    def test_unsupported_hint(self):
        with pytest.raises(ChainRoutingError) as exc_info:
            resolve_chain_family(EVM_ADDRESS, "solana")
        assert exc_info.value.code == ErrorCode.UNSUPPORTED_CHAIN_TYPE
        assert exc_info.value.message == "Unsupported chain type: solana"

    def test_non_string_hint_unsupported(self):
        with pytest.raises(ChainRoutingError) as exc_info:
            resolve_chain_family(EVM_ADDRESS, 1)
        assert exc_info.value.code == ErrorCode.UNSUPPORTED_CHAIN_TYPE
        assert exc_info.value.message == "Unsupported chain type: 1"

    @pytest.mark.parametrize("hint", [0, False, [], {}])
    def test_falsy_hint_treated_as_absent(self, hint):
        assert resolve_chain_family(EVM_ADDRESS, hint) == ChainFamily.EVM

    def test_unknown_address(self):
        with pytest.raises(ChainRoutingError) as exc_info:
            resolve_chain_family("not-an-address")
        assert exc_info.value.code == ErrorCode.UNKNOWN_ADDRESS_FORMAT
