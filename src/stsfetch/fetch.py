"""Authenticated fetch phase.

Sends a GET to the resource server carrying the exchanged token as a
bearer credential. The status is always surfaced in the returned
:class:`~stsfetch.models.FetchResult`; :func:`check_status` turns a
non-2xx answer into :class:`~stsfetch.exceptions.ResourceRejected`.
"""

from __future__ import annotations

from stsfetch.client.channel import TlsChannel
from stsfetch.exceptions import FetchError, ResourceRejected
from stsfetch.models import FetchResult


def bearer_header(token: str) -> dict[str, str]:
    """Return the single header that authenticates the resource request."""
    return {"Authorization": f"Bearer {token}"}


def fetch_resource(channel: TlsChannel, resource_url: str, bearer_token: str) -> FetchResult:
    """GET *resource_url* with ``Authorization: Bearer <bearer_token>``.

    Args:
        channel: An open channel to the resource server.
        resource_url: The configured resource URL, used as is.
        bearer_token: Access token obtained from the STS.

    Returns:
        Status, reason, content type and body of the response, whatever
        the status.

    Raises:
        ResourceConnectionError: On TLS or transport failure (raised by the
            channel).
        FetchError: If the body cannot be read completely.
    """
    response = channel.send("GET", resource_url, headers=bearer_header(bearer_token))
    body = channel.read(response, error=FetchError)
    return FetchResult(
        status_code=response.status_code,
        reason_phrase=response.reason_phrase or "",
        content_type=response.headers.get("content-type"),
        body=body,
    )


def check_status(result: FetchResult) -> FetchResult:
    """Return *result* unchanged if its status is 2xx.

    Raises:
        ResourceRejected: For any other status, carrying the body.
    """
    if not result.is_success:
        raise ResourceRejected(result.status_code, result.body)
    return result
