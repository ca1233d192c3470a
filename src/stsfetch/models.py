"""Canonical Pydantic models shared across all stsfetch modules.

The models fall into three groups:

**Configuration** -- built once at startup and never mutated:
    :class:`TlsConfig` and :class:`FetcherConfig`.

**TLS material** -- loaded from disk during startup, read-only afterwards:
    :class:`TrustRoot` and :class:`ClientIdentity`.

**Wire models** -- one per message on the two channels:
    :class:`TokenExchangeRequest`, :class:`TokenResponse` and
    :class:`FetchResult`.

Every model is frozen. Optional token fields default to ``None`` so that an
omitted field is never confused with a field that was sent as zero or empty.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator


GRANT_TYPE_TOKEN_EXCHANGE = "urn:ietf:params:oauth:grant-type:token-exchange"
TOKEN_TYPE_ACCESS_TOKEN = "urn:ietf:params:oauth:token-type:access_token"
TOKEN_TYPE_JWT = "urn:ietf:params:oauth:token-type:jwt"


# --- Configuration ---


class TlsConfig(BaseModel):
    """File locations of the TLS material used by both channels.

    ``resource_cert_file`` and ``resource_key_file`` optionally replace the
    client identity for the resource channel only, which is how a token
    issued to one identity can be shown to fail when presented by another.
    ``resource_key_password`` unlocks that key; when unset, ``key_password``
    is tried.
    """

    model_config = ConfigDict(frozen=True)

    ca_file: str = "tls-ca.crt"
    cert_file: str = "alice.crt"
    key_file: str = "alice.key"
    key_password: Optional[str] = Field(default=None, repr=False)
    resource_cert_file: Optional[str] = None
    resource_key_file: Optional[str] = None
    resource_key_password: Optional[str] = Field(default=None, repr=False)


class FetcherConfig(BaseModel):
    """Everything a single run needs, passed explicitly into both phases.

    Example::

        FetcherConfig(
            sts_address="https://sts.domain.com:8081",
            sts_sni="sts.domain.com",
            sts_audience="https://server.domain.com:8443",
            scope="read",
            subject_token="iamtheeggman",
            resource_address="https://server.domain.com:8443",
            resource_sni="server.domain.com",
        )
    """

    model_config = ConfigDict(frozen=True)

    sts_address: str
    sts_sni: str
    sts_audience: str
    scope: str
    subject_token: str = Field(repr=False)
    resource_address: str
    resource_sni: str
    tls: TlsConfig = Field(default_factory=TlsConfig)
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    deadline: Optional[float] = Field(
        default=None, gt=0, description="Overall budget for both phases in seconds"
    )
    allow_error_status: bool = Field(
        default=False,
        description="Print non-2xx resource responses instead of failing",
    )

    @field_validator("sts_address", "resource_address")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"expected an http(s) URL, got {value!r}")
        return value

    @field_validator("sts_sni", "resource_sni")
    @classmethod
    def _check_server_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("server name must not be empty")
        return value


# --- TLS material ---


class TrustRoot(BaseModel):
    """CA certificates (PEM) used to verify both servers."""

    model_config = ConfigDict(frozen=True)

    path: str
    pem: str = Field(repr=False)


class ClientIdentity(BaseModel):
    """A certificate chain and private key presented during mutual TLS."""

    model_config = ConfigDict(frozen=True)

    cert_path: str
    key_path: str
    password: Optional[str] = Field(default=None, repr=False)


# --- Wire models ---


class TokenExchangeRequest(BaseModel):
    """The form sent to the STS (:rfc:`8693` section 2.1).

    The grant and token type URNs are protocol constants; only the
    audience, scope and subject token vary per run.
    """

    model_config = ConfigDict(frozen=True)

    grant_type: str = GRANT_TYPE_TOKEN_EXCHANGE
    resource: str
    audience: str
    subject_token_type: str = TOKEN_TYPE_ACCESS_TOKEN
    requested_token_type: str = TOKEN_TYPE_JWT
    scope: str
    subject_token: str = Field(repr=False)

    @classmethod
    def for_audience(
        cls, audience: str, scope: str, subject_token: str
    ) -> TokenExchangeRequest:
        """Build a request that names *audience* as both resource and audience."""
        return cls(
            resource=audience,
            audience=audience,
            scope=scope,
            subject_token=subject_token,
        )

    def to_form(self) -> dict[str, str]:
        """Return the form fields in wire order."""
        return {
            "grant_type": self.grant_type,
            "resource": self.resource,
            "audience": self.audience,
            "subject_token_type": self.subject_token_type,
            "requested_token_type": self.requested_token_type,
            "scope": self.scope,
            "subject_token": self.subject_token,
        }


class TokenResponse(BaseModel):
    """A successful token exchange response (:rfc:`8693` section 2.2.1).

    Unknown fields returned by the STS are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1)
    issued_token_type: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    refresh_token: Optional[str] = Field(default=None, repr=False)


class FetchResult(BaseModel):
    """Status and body of the resource server's answer."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    reason_phrase: str = ""
    content_type: Optional[str] = None
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
