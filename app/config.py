# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""KeyPass Verifier configuration.

Normative constants are fixed by the login protocol. Configurable defaults
may be overridden via environment variables.
"""

import os

# =============================================================================
# NORMATIVE CONSTANTS (fixed by protocol)
# =============================================================================

LOGIN_MESSAGE_TITLE: str = "KeyPass Login"
MAX_MESSAGE_LENGTH: int = 256
MAX_MESSAGE_AGE_SECONDS: int = 5 * 60
CLOCK_SKEW_SECONDS: int = 60

SUBSTRATE_SIGNATURE_HEX_LENGTH: int = 128
EVM_SIGNATURE_HEX_LENGTH: int = 130

DID_KEY_PREFIX: str = "did:key:"
MULTIBASE_BASE58BTC: str = "z"

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================

# Network prefix used when an address is re-encoded from a DID. 42 is the
# generic Substrate prefix.
SS58_FORMAT: int = int(os.getenv("KEYPASS_SS58_FORMAT", "42"))
SS58_FORMAT_STRICT: bool = os.getenv("KEYPASS_SS58_FORMAT_STRICT", "false").lower() == "true"

# =============================================================================
# NETWORK
# =============================================================================

HTTP_HOST: str = os.getenv("KEYPASS_HTTP_HOST", "0.0.0.0")
HTTP_PORT: int = int(os.getenv("KEYPASS_HTTP_PORT", "3000"))

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL: str = os.getenv("KEYPASS_LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("KEYPASS_LOG_FORMAT", "json")

SERVICE_VERSION: str = "1.0.0"
