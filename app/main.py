# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""FastAPI application for the KeyPass Verifier.

**HTTP Endpoints**

* ``POST /api/verify`` — Accept a signed login challenge
  (``message``, ``signature``, ``address`` and optional ``chainType``),
  run the verification pipeline and return a
  :class:`VerificationResponse`. On success the response carries the
  ``did:key`` identifier of the account.

* ``POST /api/challenge`` — Issue a fresh login challenge for an
  address. The wallet signs the returned ``message`` verbatim.

* ``GET /healthz`` — Lightweight health-check endpoint returning
  service status, supported chains and version.

**Status codes**

Verification responses use 200 for success, 400 for any rejected
request and 500 for ``INTERNAL_ERROR``. The body has the same shape in
all three cases.

**Logging**

Structured JSON logging is configured at startup using the
``KEYPASS_LOG_LEVEL`` and ``KEYPASS_LOG_FORMAT`` settings. Signatures
and messages are never logged; outcomes are logged by code and chain.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import HTTP_HOST, HTTP_PORT, LOG_FORMAT, LOG_LEVEL, SERVICE_VERSION
from app.keypass.challenge import issue_challenge
from app.keypass.exceptions import KeyPassError
from app.keypass.models import (
    SUCCESS_CODE,
    ChainFamily,
    ErrorCode,
    ResponseStatus,
    VerificationResponse,
)
from app.keypass.verify import verify_signature


# ======================================================================
# Structured JSON logging
# ======================================================================


class _JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Produces one JSON object per log line with fields:

    * ``timestamp`` — ISO 8601 UTC timestamp.
    * ``level`` — Log level name (INFO, WARNING, ERROR, etc.).
    * ``logger`` — Logger name.
    * ``message`` — The formatted log message.
    * ``module`` — Source module name.
    * ``funcName`` — Source function name.

    If the log record carries an exception, it is serialized as an
    ``exception`` field containing the formatted traceback string.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging() -> None:
    """Configure logging for the application.

    Sets up the root logger with a single stream handler writing to
    stdout, JSON lines by default or plain text when ``LOG_FORMAT`` is
    ``text``. Existing handlers are removed first to prevent duplicate
    output under uvicorn.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT.lower() == "text":
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    else:
        handler.setFormatter(_JSONFormatter())

    root.addHandler(handler)
    root.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))

    # Suppress noisy third-party loggers.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("substrateinterface").setLevel(logging.WARNING)


# ======================================================================
# Application lifespan
# ======================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup and log shutdown.

    The verifier holds no connections or background tasks, so there is
    nothing else to start or stop.
    """
    logger = logging.getLogger("keypass.main")

    _configure_logging()
    logger.info(
        "KeyPass Verifier starting: HTTP=%s:%d, log_level=%s",
        HTTP_HOST, HTTP_PORT, LOG_LEVEL,
    )

    yield

    logger.info("KeyPass Verifier shutdown complete")


# ======================================================================
# FastAPI application
# ======================================================================

app = FastAPI(
    title="KeyPass Verifier",
    description=(
        "Wallet login verification service. Verifies signed login "
        "challenges from Substrate and EVM accounts and derives a "
        "did:key identifier for the signer."
    ),
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

# Module-level logger (configured properly after lifespan runs).
logger = logging.getLogger("keypass.main")


def _status_for(response: VerificationResponse) -> int:
    if response.is_success:
        return 200
    if response.code == ErrorCode.INTERNAL_ERROR.value:
        return 500
    return 400


def _error(code: ErrorCode, message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        content=VerificationResponse.error(code.value, message).to_wire(),
        status_code=status_code,
    )


async def _json_body(request: Request) -> Any:
    """Return the decoded JSON body, or ``None`` if it is not valid JSON."""
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


# ======================================================================
# Endpoints
# ======================================================================


@app.post(
    "/api/verify",
    summary="Verify a signed login challenge",
    description=(
        "Submit a signed KeyPass login challenge. Returns the account's "
        "did:key identifier on success, or an error code identifying the "
        "first failed check."
    ),
    tags=["verification"],
)
async def verify_endpoint(request: Request) -> JSONResponse:
    """Execute the KeyPass verification pipeline.

    The raw body is decoded here rather than through a request model so
    that malformed bodies are reported with the ``INVALID_REQUEST`` code
    instead of FastAPI's validation error format.
    """
    body = await _json_body(request)
    if not isinstance(body, dict):
        logger.info("POST /api/verify rejected: body is not a JSON object")
        return _error(ErrorCode.INVALID_REQUEST, "Invalid request body: expected a JSON object")

    try:
        response = verify_signature(body)
    except Exception:
        logger.exception("Unhandled exception in verification pipeline")
        return _error(ErrorCode.INTERNAL_ERROR, "Internal verification error", 500)

    logger.info(
        "POST /api/verify complete: status=%s code=%s",
        response.status.value, response.code,
    )
    return JSONResponse(content=response.to_wire(), status_code=_status_for(response))


@app.post(
    "/api/challenge",
    summary="Issue a login challenge",
    description=(
        "Render a fresh KeyPass login challenge for an address. The "
        "challenge is valid for five minutes."
    ),
    tags=["verification"],
)
async def challenge_endpoint(request: Request) -> JSONResponse:
    """Issue a challenge for ``address`` with optional ``chainType``."""
    body = await _json_body(request)
    if not isinstance(body, dict):
        return _error(ErrorCode.INVALID_REQUEST, "Invalid request body: expected a JSON object")

    address = body.get("address")
    chain_type = body.get("chainType")
    if not isinstance(address, str) or not address.strip():
        return _error(ErrorCode.INVALID_REQUEST, "Missing required fields: address")

    try:
        challenge = issue_challenge(address, chain_type)
    except KeyPassError as exc:
        return _error(exc.code, exc.message)

    logger.info("Challenge issued: chain=%s", challenge.chain_type.value)
    return JSONResponse(
        content={
            "status": ResponseStatus.SUCCESS.value,
            "message": "Challenge issued",
            "code": SUCCESS_CODE,
            "data": challenge.to_dict(),
        },
        status_code=200,
    )


@app.get(
    "/healthz",
    summary="Health check",
    description="Returns service health status, supported chains and version.",
    tags=["health"],
)
async def healthz() -> JSONResponse:
    """Health check endpoint.

    Returns a JSON object with:

    * ``status`` — Always ``"ok"`` if the service is running.
    * ``chains`` — The ``chainType`` values the verifier accepts.
    * ``version`` — Service version.
    """
    return JSONResponse(
        content={
            "status": "ok",
            "chains": [family.value for family in ChainFamily],
            "version": SERVICE_VERSION,
        },
        status_code=200,
    )


# ======================================================================
# Application runner (for direct invocation)
# ======================================================================


def main() -> None:
    """Run the KeyPass Verifier using uvicorn.

    This entry point is intended for direct invocation during
    development::

        python -m app.main

    For production deployments, use uvicorn directly::

        uvicorn app.main:app --host 0.0.0.0 --port 3000
    """
    import uvicorn

    _configure_logging()

    logger.info("Starting KeyPass Verifier: HTTP=%s:%d", HTTP_HOST, HTTP_PORT)

    uvicorn.run(
        "app.main:app",
        host=HTTP_HOST,
        port=HTTP_PORT,
        log_level=LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
