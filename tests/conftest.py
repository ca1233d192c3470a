"""Shared test fixtures for stsfetch.

Provides a ready-made run configuration, stub STS and resource servers
built on :class:`httpx.MockTransport`, and output state management. The TLS
contexts are replaced by plain default contexts because the stub transports
never perform a handshake.

Tests that do handshake use the session-wide :func:`pki` fixture, a
throwaway CA with certificates for both servers and two client identities.
"""

from __future__ import annotations

import datetime
import json
import ssl
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from stsfetch import workflow
from stsfetch.models import FetcherConfig, TlsConfig
from stsfetch.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during a
    test, the cached references go stale once the test finishes.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, plain output manager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config() -> Callable[..., FetcherConfig]:
    """Factory for a FetcherConfig with test defaults overridden by kwargs."""

    def _make(**overrides: Any) -> FetcherConfig:
        values: dict[str, Any] = {
            "sts_address": "https://sts.domain.com:8081/token",
            "sts_sni": "sts.domain.com",
            "sts_audience": "https://svc:8443",
            "scope": "read",
            "subject_token": "abc",
            "resource_address": "https://server.domain.com:8443/data",
            "resource_sni": "server.domain.com",
            "tls": TlsConfig(),
        }
        values.update(overrides)
        return FetcherConfig(**values)

    return _make


@pytest.fixture
def config(make_config: Callable[..., FetcherConfig]) -> FetcherConfig:
    return make_config()


@pytest.fixture
def stub_tls(monkeypatch: pytest.MonkeyPatch) -> workflow.TlsContexts:
    """Skip loading certificate files; stub transports never handshake."""
    contexts = workflow.TlsContexts(
        sts=ssl.create_default_context(),
        resource=ssl.create_default_context(),
    )
    monkeypatch.setattr(workflow, "load_tls_contexts", lambda config: contexts)
    return contexts


# ---------------------------------------------------------------------------
# Stub servers
# ---------------------------------------------------------------------------


class StubServer:
    """Records every request it receives and answers with *handler*."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def called(self) -> bool:
        return bool(self.requests)


def token_json(status_code: int = 200, **payload: Any) -> Callable[[httpx.Request], httpx.Response]:
    """Handler answering with a JSON token payload."""
    if not payload:
        payload = {"access_token": "TKN123", "token_type": "Bearer"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(payload).encode(),
            headers={"content-type": "application/json"},
        )

    return handler


def echo_authorization(request: httpx.Request) -> httpx.Response:
    """Resource handler that echoes the Authorization header back."""
    return httpx.Response(
        200,
        text=f"authorization={request.headers.get('authorization', '')}",
        headers={"content-type": "text/plain"},
    )


@pytest.fixture
def sts_server() -> StubServer:
    return StubServer(token_json())


@pytest.fixture
def resource_server() -> StubServer:
    return StubServer(echo_authorization)


@pytest.fixture
def make_server() -> type[StubServer]:
    return StubServer


@pytest.fixture
def token_handler() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    return token_json


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------

class Pki:
    """PEM files for a test CA, both servers and two client identities."""

    key_password = "s3cret"

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.ca_key = ec.generate_private_key(ec.SECP256R1())
        self.ca_cert = _issue("Test CA", self.ca_key, None, self.ca_key, ca=True)
        self.ca_file = self._write("tls-ca.crt", self.ca_cert)
        self._keys: dict[str, ec.EllipticCurvePrivateKey] = {}

        self.sts = self._leaf("sts.domain.com", ExtendedKeyUsageOID.SERVER_AUTH)
        self.resource = self._leaf("server.domain.com", ExtendedKeyUsageOID.SERVER_AUTH)
        self.alice = self._leaf("alice", ExtendedKeyUsageOID.CLIENT_AUTH)
        self.bob = self._leaf("bob", ExtendedKeyUsageOID.CLIENT_AUTH)
        self.alice_encrypted_key = self._write_key(
            "alice-encrypted.key", self._keys["alice"], self.key_password
        )

    def _leaf(self, name: str, usage: x509.ObjectIdentifier) -> tuple[str, str]:
        key = ec.generate_private_key(ec.SECP256R1())
        dns = [name] if usage == ExtendedKeyUsageOID.SERVER_AUTH else None
        cert = _issue(name, key, self.ca_cert, self.ca_key, dns=dns, usage=usage)
        self._keys[name] = key
        return self._write(f"{name}.crt", cert), self._write_key(f"{name}.key", key)

    def _write(self, filename: str, cert: x509.Certificate) -> str:
        path = self.directory / filename
        path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        return str(path)

    def _write_key(
        self, filename: str, key: ec.EllipticCurvePrivateKey, password: Optional[str] = None
    ) -> str:
        encryption: serialization.KeySerializationEncryption = serialization.NoEncryption()
        if password is not None:
            encryption = serialization.BestAvailableEncryption(password.encode())
        path = self.directory / filename
        path.write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=encryption,
            )
        )
        return str(path)


def _issue(
    common_name: str,
    key: ec.EllipticCurvePrivateKey,
    issuer: Optional[x509.Certificate],
    issuer_key: ec.EllipticCurvePrivateKey,
    *,
    ca: bool = False,
    dns: Optional[list[str]] = None,
    usage: Optional[x509.ObjectIdentifier] = None,
) -> x509.Certificate:
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.subject if issuer is not None else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
            critical=False,
        )
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=not ca,
                key_cert_sign=ca,
                crl_sign=ca,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    )
    if dns:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns]), critical=False
        )
    if usage is not None:
        builder = builder.add_extension(x509.ExtendedKeyUsage([usage]), critical=False)
    return builder.sign(issuer_key, hashes.SHA256())


@pytest.fixture(scope="session")
def pki(tmp_path_factory: pytest.TempPathFactory) -> Pki:
    """A CA with server certificates for both hosts and client identities alice and bob."""
    return Pki(tmp_path_factory.mktemp("pki"))
