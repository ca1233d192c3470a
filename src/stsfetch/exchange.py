"""Token exchange phase (:rfc:`8693`).

Posts the exchange form to the STS over a :class:`~stsfetch.client.channel.TlsChannel`
and decodes the answer into a :class:`~stsfetch.models.TokenResponse`.

The response body is read exactly once; the status is then checked before
any decoding is attempted, so the rejected body is always available for
diagnostics.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from stsfetch.client.channel import TlsChannel
from stsfetch.exceptions import ExchangeRejected, MalformedResponse
from stsfetch.models import TokenExchangeRequest, TokenResponse
from stsfetch.output import get_output


def exchange_token(
    channel: TlsChannel,
    sts_url: str,
    request: TokenExchangeRequest,
) -> TokenResponse:
    """Exchange the subject token for an access token.

    Args:
        channel: An open channel to the STS.
        sts_url: Token endpoint URL.
        request: The exchange form to send.

    Returns:
        The decoded token response. ``access_token`` is guaranteed
        non-empty.

    Raises:
        StsConnectionError: On TLS or transport failure (raised by the
            channel).
        ExchangeRejected: If the STS answers with a status other than 200.
        MalformedResponse: If a 200 body is not a usable token response.
    """
    output = get_output()

    response = channel.send(
        "POST",
        sts_url,
        headers={"Accept": "application/json"},
        data=request.to_form(),
    )
    body = channel.read(response)
    output.info(f"STS: HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())

    if response.status_code != 200:
        raise ExchangeRejected(response.status_code, body)

    token = parse_token_response(body)
    output.debug(f"STS token ({token.token_type or 'unknown type'}): {token.access_token}")
    return token


def parse_token_response(body: bytes) -> TokenResponse:
    """Decode a token endpoint body into a :class:`TokenResponse`.

    Raises:
        MalformedResponse: If *body* is not JSON, not a JSON object, or
            lacks a non-empty string ``access_token``.
    """
    try:
        payload: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedResponse(f"body is not JSON ({exc})", body) from exc

    if not isinstance(payload, dict):
        raise MalformedResponse(
            f"expected a JSON object, got {type(payload).__name__}", body
        )

    try:
        return TokenResponse.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        raise MalformedResponse(problems, body) from exc
