# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Chain family routing.

Decides which chain family governs a request, either from an explicit
``chainType`` hint or from the shape of the address. The hint always
wins and is never cross-checked against the address; an address whose
shape contradicts the hint is rejected later by the family-specific
address validator.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from app.keypass.exceptions import ChainRoutingError
from app.keypass.models import ChainFamily

__all__ = [
    "EVM_ADDRESS_PATTERN",
    "SUBSTRATE_ADDRESS_PATTERN",
    "detect_chain_family",
    "resolve_chain_family",
]

# 0x followed by 20 bytes of hex.
EVM_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

# SS58 addresses: base58 alphabet (no 0, O, I, l), 47-48 characters for
# 32-byte account ids.
SUBSTRATE_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{47,48}$")


def detect_chain_family(address: str) -> Optional[ChainFamily]:
    """Infer the chain family from the address shape alone.

    The EVM pattern is checked first. Returns ``None`` when the address
    matches neither shape.
    """
    if EVM_ADDRESS_PATTERN.fullmatch(address):
        return ChainFamily.EVM
    if SUBSTRATE_ADDRESS_PATTERN.fullmatch(address):
        return ChainFamily.SUBSTRATE
    return None


def resolve_chain_family(address: str, hint: Optional[Any] = None) -> ChainFamily:
    """Resolve the chain family for a request.

    Parameters:
        address: The claimed account address.
        hint: Optional ``chainType`` value from the request. Any falsy
            value is treated as absent; any other value that is not a
            known chain name is unsupported.

    Returns:
        The governing :class:`ChainFamily`.

    Raises:
        ChainRoutingError: ``UNSUPPORTED_CHAIN_TYPE`` for an unknown hint,
            ``UNKNOWN_ADDRESS_FORMAT`` when no hint is given and the
            address matches no known shape.
    """
    if hint:
        for family in ChainFamily:
            if hint == family.value:
                return family
        raise ChainRoutingError.unsupported(str(hint))

    family = detect_chain_family(address)
    if family is None:
        raise ChainRoutingError.unknown_address()
    return family
