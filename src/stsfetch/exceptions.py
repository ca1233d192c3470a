"""Exception hierarchy for stsfetch.

All exceptions inherit from :class:`StsFetchError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`stsfetch.exit_codes`.
The CLI command catches ``StsFetchError`` and exits with the appropriate
code. Every error is terminal for the run; nothing here is retried.

Subclass hierarchy::

    StsFetchError (exit 1)
    +-- ConfigError              (exit 3)
    +-- ConnectionError_         (exit 4)
    |   +-- StsConnectionError
    |   +-- ResourceConnectionError
    +-- ExchangeRejected         (exit 5)
    +-- MalformedResponse        (exit 6)
    +-- FetchError               (exit 7)
    +-- ResourceRejected         (exit 8)
    +-- DeadlineExceeded         (exit 9)
"""

from __future__ import annotations

from stsfetch.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_DEADLINE_EXCEEDED,
    EXIT_EXCHANGE_REJECTED,
    EXIT_FETCH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_MALFORMED_RESPONSE,
    EXIT_RESOURCE_REJECTED,
)

PHASE_EXCHANGE = "token exchange"
PHASE_FETCH = "resource fetch"


def _body_text(body: bytes, limit: int = 500) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class StsFetchError(Exception):
    """Base exception for all stsfetch errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`stsfetch.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(StsFetchError):
    """Raised for unreadable CA/certificate/key files and invalid options.

    Args:
        message: What is wrong.
        hint: Optional next step naming the option to fix, shown by the
            CLI under the error.
    """

    exit_code = EXIT_CONFIG_ERROR

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class ConnectionError_(StsFetchError):
    """Raised on TLS handshake or transport failures.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StsConnectionError(ConnectionError_):
    """Transport or TLS failure while talking to the STS."""


class ResourceConnectionError(ConnectionError_):
    """Transport or TLS failure while talking to the resource server."""


class ExchangeRejected(StsFetchError):
    """Raised when the STS answers the exchange with a status other than 200.

    Args:
        status_code: The HTTP status returned by the STS.
        body: The raw response body, kept for diagnostics.
    """

    exit_code = EXIT_EXCHANGE_REJECTED

    def __init__(self, status_code: int, body: bytes):
        self.status_code = status_code
        self.body = body
        message = f"{PHASE_EXCHANGE} rejected with HTTP {status_code}"
        text = _body_text(body)
        if text:
            message = f"{message}: {text}"
        super().__init__(message)


class MalformedResponse(StsFetchError):
    """Raised when a 200 token response cannot be decoded into a token."""

    exit_code = EXIT_MALFORMED_RESPONSE

    def __init__(self, reason: str, body: bytes = b""):
        self.body = body
        super().__init__(f"{PHASE_EXCHANGE} returned a malformed response: {reason}")


class FetchError(StsFetchError):
    """Raised when the resource response body cannot be read completely."""

    exit_code = EXIT_FETCH_ERROR


class ResourceRejected(StsFetchError):
    """Raised when the resource server answers with a non-2xx status.

    Args:
        status_code: The HTTP status returned by the resource server.
        body: The raw response body.
    """

    exit_code = EXIT_RESOURCE_REJECTED

    def __init__(self, status_code: int, body: bytes):
        self.status_code = status_code
        self.body = body
        message = f"{PHASE_FETCH} rejected with HTTP {status_code}"
        text = _body_text(body)
        if text:
            message = f"{message}: {text}"
        super().__init__(message)


class DeadlineExceeded(StsFetchError):
    """Raised when the overall ``--deadline`` budget runs out."""

    exit_code = EXIT_DEADLINE_EXCEEDED
