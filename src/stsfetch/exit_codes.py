"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific failure kind and is referenced by the
corresponding :class:`~stsfetch.exceptions.StsFetchError` subclass.
Shell wrappers can inspect the exit code to tell which phase failed and why
without parsing stderr.

Example::

    $ stsfetch --stsaddress https://sts.internal:8081
    $ echo $?
    5   # EXIT_EXCHANGE_REJECTED -- the STS refused the exchange
"""

EXIT_SUCCESS = 0
"""The token was exchanged and the resource fetched."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""A CA, certificate or key file is missing or unreadable, or an option is invalid."""

EXIT_CONNECTION_ERROR = 4
"""A TLS handshake or transport failure occurred on either channel."""

EXIT_EXCHANGE_REJECTED = 5
"""The STS answered the token exchange with a non-200 status."""

EXIT_MALFORMED_RESPONSE = 6
"""The STS returned a body that is not a usable token response."""

EXIT_FETCH_ERROR = 7
"""The resource response body could not be read."""

EXIT_RESOURCE_REJECTED = 8
"""The resource server answered with a non-2xx status."""

EXIT_DEADLINE_EXCEEDED = 9
"""The overall time budget ran out before the run completed."""

EXIT_INTERRUPTED = 130
"""The run was cancelled with Ctrl-C."""
