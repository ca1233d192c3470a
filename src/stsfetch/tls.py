"""Loading TLS material and building one SSL context per channel.

The trust root and client identity are read and validated once at startup,
before any network traffic, so that a missing or corrupt file fails fast
with :class:`~stsfetch.exceptions.ConfigError`.

Each channel then gets its own :class:`ssl.SSLContext` from
:func:`create_ssl_context`. Contexts are never shared between the STS and
resource channels; the server name each one verifies is supplied per
request by :class:`~stsfetch.client.channel.TlsChannel`.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Optional

from stsfetch.exceptions import ConfigError
from stsfetch.models import ClientIdentity, TrustRoot

CA_HINT = "Point --tlsCA (or STSFETCH_TLS_CA) at a PEM bundle of CA certificates."


def load_trust_root(path: str) -> TrustRoot:
    """Read and validate a PEM bundle of CA certificates.

    Args:
        path: Path to a PEM file containing one or more CA certificates.

    Returns:
        The loaded :class:`~stsfetch.models.TrustRoot`.

    Raises:
        ConfigError: If the file is missing, unreadable, or holds no
            certificate.
    """
    ca_path = Path(path).expanduser()
    if not ca_path.is_file():
        raise ConfigError(f"CA file not found: {ca_path}", hint=CA_HINT)
    try:
        pem = ca_path.read_text(encoding="utf-8")
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read CA file {ca_path}: {exc}", hint=CA_HINT) from exc

    # ssl has no standalone PEM parser; a throwaway context does the check.
    probe = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        probe.load_verify_locations(cadata=pem)
    except (ssl.SSLError, ValueError) as exc:
        raise ConfigError(
            f"CA file {ca_path} holds no usable certificate: {exc}", hint=CA_HINT
        ) from exc

    return TrustRoot(path=str(ca_path), pem=pem)


def load_client_identity(
    cert_path: str,
    key_path: str,
    password: Optional[str] = None,
    options: tuple[str, str] = ("--tlsCert", "--tlsKey"),
) -> ClientIdentity:
    """Validate a client certificate and its private key.

    Args:
        cert_path: PEM certificate chain presented to the servers.
        key_path: PEM private key matching the certificate.
        password: Password for an encrypted private key.
        options: The CLI flags that named the two files, used in the hint
            attached to errors.

    Returns:
        The loaded :class:`~stsfetch.models.ClientIdentity`.

    Raises:
        ConfigError: If either file is missing, unreadable, or the key does
            not match the certificate.
    """
    cert = Path(cert_path).expanduser()
    key = Path(key_path).expanduser()
    hint = f"Check {options[0]} and {options[1]}."
    for label, path in (("certificate", cert), ("key", key)):
        if not path.is_file():
            raise ConfigError(f"Client {label} file not found: {path}", hint=hint)

    identity = ClientIdentity(cert_path=str(cert), key_path=str(key), password=password)
    probe = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    _load_identity(probe, identity, hint)
    return identity


def create_ssl_context(identity: ClientIdentity, trust_root: TrustRoot) -> ssl.SSLContext:
    """Build a fresh client context presenting *identity* and trusting *trust_root*.

    Hostname checking stays on. The name that is checked comes from the
    SNI value the channel sends, not from the URL host.
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cadata=trust_root.pem)
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    _load_identity(context, identity)
    return context


def _load_identity(
    context: ssl.SSLContext, identity: ClientIdentity, hint: Optional[str] = None
) -> None:
    try:
        context.load_cert_chain(
            identity.cert_path,
            identity.key_path,
            password=identity.password,
        )
    except (OSError, ValueError) as exc:
        raise ConfigError(
            f"Cannot load client certificate {identity.cert_path} "
            f"with key {identity.key_path}: {exc}",
            hint=hint,
        ) from exc
