# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Login challenge issuance.

Renders the challenge text that a wallet is asked to sign. The default
template produces exactly the grammar accepted by
:func:`app.keypass.message.validate_message_format`.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from app.config import LOGIN_MESSAGE_TITLE
from app.keypass.chain import resolve_chain_family
from app.keypass.models import ChainFamily

__all__ = [
    "Challenge",
    "LOGIN_MESSAGE_TEMPLATE",
    "build_login_message",
    "format_issued_at",
    "generate_nonce",
    "issue_challenge",
    "rebuild_message",
]

LOGIN_MESSAGE_TEMPLATE = (
    f"{LOGIN_MESSAGE_TITLE}\n"
    "Issued At: {{issuedAt}}\n"
    "Nonce: {{nonce}}\n"
    "Address: {{address}}"
)


@dataclass(frozen=True)
class Challenge:
    message: str
    nonce: str
    issued_at: str
    address: str
    chain_type: ChainFamily

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "nonce": self.nonce,
            "issuedAt": self.issued_at,
            "address": self.address,
            "chainType": self.chain_type.value,
        }


def generate_nonce() -> str:
    """Return a 128-bit random nonce as 32 hex characters."""
    return secrets.token_hex(16)


def format_issued_at(moment: Optional[datetime] = None) -> str:
    """Format *moment* (default: now) as ISO-8601 UTC with milliseconds and ``Z``."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def build_login_message(
    template: str,
    address: str,
    nonce: Optional[str],
    issued_at: str,
) -> str:
    """Replace ``{{address}}``, ``{{nonce}}`` and ``{{issuedAt}}`` in *template*.

    Placeholders absent from the template are ignored.

    Raises:
        ValueError: If the template uses a placeholder whose value is ``None``.
    """
    placeholders = {"address": address, "nonce": nonce, "issuedAt": issued_at}
    message = template
    for key, value in placeholders.items():
        token = "{{" + key + "}}"
        if token in message:
            if value is None:
                raise ValueError(f"Missing placeholder: {key}")
            message = message.replace(token, value)
    return message


def rebuild_message(address: str, nonce: str, issued_at: str) -> str:
    """Re-render a challenge from its parts with the default template."""
    return build_login_message(LOGIN_MESSAGE_TEMPLATE, address, nonce, issued_at)


def issue_challenge(
    address: str,
    chain_type: Any = None,
    *,
    now: Optional[datetime] = None,
) -> Challenge:
    """Issue a fresh challenge for *address*.

    The chain family is resolved with the same rules as verification so
    that an address the verifier would not route is refused up front.

    Raises:
        ChainRoutingError: If the chain family cannot be resolved.
    """
    family = resolve_chain_family(address, chain_type)
    nonce = generate_nonce()
    issued_at = format_issued_at(now)
    return Challenge(
        message=rebuild_message(address, nonce, issued_at),
        nonce=nonce,
        issued_at=issued_at,
        address=address,
        chain_type=family,
    )
