"""Sequencing of the two phases.

The run moves through::

    INIT -> TOKEN_EXCHANGE -> TOKEN_OBTAINED -> RESOURCE_FETCH -> DONE

and stops at the first error. TLS material is loaded during ``INIT`` so that
a bad CA, certificate or key fails before any connection is opened, and the
resource fetch is only entered with a parsed token in hand.
"""

from __future__ import annotations

import enum
import ssl
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict

from stsfetch.client.channel import TlsChannel
from stsfetch.deadline import Deadline
from stsfetch.exceptions import (
    PHASE_EXCHANGE,
    PHASE_FETCH,
    ResourceConnectionError,
    StsConnectionError,
)
from stsfetch.exchange import exchange_token
from stsfetch.fetch import check_status, fetch_resource
from stsfetch.models import FetchResult, FetcherConfig, TokenExchangeRequest, TokenResponse
from stsfetch.output import get_output
from stsfetch.tls import create_ssl_context, load_client_identity, load_trust_root


class Phase(str, enum.Enum):
    INIT = "init"
    TOKEN_EXCHANGE = PHASE_EXCHANGE
    TOKEN_OBTAINED = "token obtained"
    RESOURCE_FETCH = PHASE_FETCH
    DONE = "done"


class TlsContexts(BaseModel):
    """Independent SSL contexts for the two channels."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    sts: ssl.SSLContext
    resource: ssl.SSLContext


class WorkflowResult(BaseModel):
    """What a completed run produced."""

    model_config = ConfigDict(frozen=True)

    token: TokenResponse
    resource: FetchResult


def load_tls_contexts(config: FetcherConfig) -> TlsContexts:
    """Load the trust root and identities once and build one context per channel.

    Raises:
        ConfigError: If any CA, certificate or key file is unusable.
    """
    tls = config.tls
    trust_root = load_trust_root(tls.ca_file)
    identity = load_client_identity(tls.cert_file, tls.key_file, tls.key_password)

    resource_identity = identity
    if tls.resource_cert_file and tls.resource_key_file:
        password = tls.resource_key_password
        if password is None:
            password = tls.key_password
        resource_identity = load_client_identity(
            tls.resource_cert_file,
            tls.resource_key_file,
            password,
            options=("--resourceCert", "--resourceKey"),
        )

    return TlsContexts(
        sts=create_ssl_context(identity, trust_root),
        resource=create_ssl_context(resource_identity, trust_root),
    )


def run_workflow(
    config: FetcherConfig,
    sts_transport: Optional[httpx.BaseTransport] = None,
    resource_transport: Optional[httpx.BaseTransport] = None,
) -> WorkflowResult:
    """Exchange the subject token, then fetch the resource with it.

    Args:
        config: The run configuration.
        sts_transport: Optional transport replacing the network for the STS.
        resource_transport: Optional transport replacing the network for the
            resource server.

    Returns:
        The token response and the fetched resource.

    Raises:
        StsFetchError: The first error encountered, from whichever phase.
    """
    output = get_output()
    phase = Phase.INIT
    output.debug(f"Phase: {phase.value}")

    contexts = load_tls_contexts(config)
    deadline = Deadline(config.deadline) if config.deadline is not None else None

    phase = Phase.TOKEN_EXCHANGE
    output.debug(f"Phase: {phase.value} ({config.sts_address} as {config.sts_sni})")
    request = TokenExchangeRequest.for_audience(
        config.sts_audience, config.scope, config.subject_token
    )
    with TlsChannel(
        PHASE_EXCHANGE,
        config.sts_sni,
        contexts.sts,
        config.timeout,
        deadline=deadline,
        connection_error=StsConnectionError,
        transport=sts_transport,
    ) as channel:
        token = exchange_token(channel, config.sts_address, request)

    phase = Phase.TOKEN_OBTAINED
    output.debug(f"Phase: {phase.value}")

    phase = Phase.RESOURCE_FETCH
    output.debug(f"Phase: {phase.value} ({config.resource_address} as {config.resource_sni})")
    with TlsChannel(
        PHASE_FETCH,
        config.resource_sni,
        contexts.resource,
        config.timeout,
        deadline=deadline,
        connection_error=ResourceConnectionError,
        transport=resource_transport,
    ) as channel:
        result = fetch_resource(channel, config.resource_address, token.access_token)

    if not config.allow_error_status:
        check_status(result)

    phase = Phase.DONE
    output.debug(f"Phase: {phase.value}")
    return WorkflowResult(token=token, resource=result)
