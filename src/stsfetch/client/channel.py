"""One mutually-authenticated HTTP channel per target server.

This module provides :class:`TlsChannel`, a thin wrapper around
:class:`httpx.Client` that layers on:

- **Server-name override** -- every request carries the ``sni_hostname``
  extension, so the TLS handshake announces and verifies the configured
  name even when the URL points at an IP or a different host.
- **Explicit timeouts** -- the per-request timeout is always set, and is
  shortened to whatever remains of an optional
  :class:`~stsfetch.deadline.Deadline`.
- **Error mapping** -- httpx transport errors are translated into the
  channel's :class:`~stsfetch.exceptions.ConnectionError_` subclass, and
  timeouts past the deadline into
  :class:`~stsfetch.exceptions.DeadlineExceeded`.
- **Single body read** -- responses are streamed so that the status can be
  inspected before the body is read, and the body is read exactly once.

There is no retry and no pooling across servers: the STS and the resource
server each get their own channel and SSL context.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, Optional

import httpx

from stsfetch.deadline import Deadline
from stsfetch.exceptions import ConnectionError_

logger = logging.getLogger(__name__)


class TlsChannel:
    """Synchronous HTTP channel to a single server over mutual TLS.

    Must be used as a context manager so that the underlying
    :class:`httpx.Client` is opened and closed around the phase.

    Args:
        phase: Label used in error messages (``"token exchange"``, ...).
        server_name: Name sent as SNI and checked against the server
            certificate.
        ssl_context: Context presenting the client identity and trusting
            the CA bundle.
        timeout: Per-request timeout in seconds.
        deadline: Optional overall budget shared with other channels.
        connection_error: Exception type raised on transport failures.
        transport: Optional httpx transport, used by tests to stub the
            server.

    Example::

        with TlsChannel("token exchange", "sts.domain.com", ctx, 30.0) as channel:
            response = channel.send("POST", url, data=form)
            body = channel.read(response)
    """

    def __init__(
        self,
        phase: str,
        server_name: str,
        ssl_context: ssl.SSLContext,
        timeout: float,
        deadline: Optional[Deadline] = None,
        connection_error: type[ConnectionError_] = ConnectionError_,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._phase = phase
        self._server_name = server_name
        self._ssl_context = ssl_context
        self._timeout = timeout
        self._deadline = deadline
        self._connection_error = connection_error
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def server_name(self) -> str:
        return self._server_name

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> TlsChannel:
        self._client = httpx.Client(
            verify=self._ssl_context,
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=False,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request and return once the response headers arrive.

        The body is left unread; pass the response to :meth:`read`.

        Raises:
            ConnectionError_: The channel's subclass, on TLS or transport
                failure.
            DeadlineExceeded: If the deadline is spent before or during the
                request.
        """
        assert self._client is not None, "Channel not open -- use as context manager"

        timeout = self._request_timeout()
        request = self._client.build_request(
            method,
            url,
            headers=headers,
            data=data,
            timeout=timeout,
            extensions={"sni_hostname": self._server_name},
        )
        logger.debug("%s: %s %s (server name %s)", self._phase, method, url, self._server_name)

        try:
            return self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise self._timeout_error(exc) from exc
        except httpx.TransportError as exc:
            raise self._connection_error(
                f"{self._phase} failed: could not connect to {url} "
                f"as {self._server_name}: {exc}"
            ) from exc

    def read(
        self,
        response: httpx.Response,
        error: Optional[type[Exception]] = None,
    ) -> bytes:
        """Read the full body of *response* once and close it.

        Args:
            response: A streamed response returned by :meth:`send`.
            error: Exception type for read failures. Defaults to the
                channel's connection error.
        """
        error_cls = error or self._connection_error
        try:
            return response.read()
        except httpx.TimeoutException as exc:
            raise self._timeout_error(exc, error_cls) from exc
        except (httpx.TransportError, httpx.StreamError) as exc:
            raise error_cls(
                f"{self._phase} failed while reading the response body: {exc}"
            ) from exc
        finally:
            response.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _request_timeout(self) -> float:
        if self._deadline is None:
            return self._timeout
        return self._deadline.cap(self._timeout, self._phase)

    def _timeout_error(
        self,
        exc: httpx.TimeoutException,
        error_cls: Optional[type[Exception]] = None,
    ) -> Exception:
        if self._deadline is not None and self._deadline.expired:
            return self._deadline.exceeded(self._phase)
        error_cls = error_cls or self._connection_error
        return error_cls(f"{self._phase} timed out after {self._timeout:g}s: {exc}")
