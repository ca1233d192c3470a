"""Building the immutable run configuration.

The CLI collects option values (already merged with ``STSFETCH_*``
environment variables by Typer) and hands them to :func:`build_config`,
which resolves the subject credential, validates everything, and returns a
frozen :class:`~stsfetch.models.FetcherConfig`. That single value is then
passed explicitly into both phases; nothing reads option state afterwards.

Precedence (high to low):
    1. CLI flags
    2. Environment variables (``STSFETCH_STS_ADDRESS``, ...)
    3. Defaults (:data:`DEFAULTS`)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from stsfetch.exceptions import ConfigError
from stsfetch.models import FetcherConfig, TlsConfig

ENV_PREFIX = "STSFETCH_"

CREDENTIAL_HINT = "--stsCred takes a literal token, env:VAR or file:/path."

DEFAULTS: dict[str, str] = {
    "resource_address": "https://server.domain.com:8443",
    "resource_sni": "server.domain.com",
    "tls_ca": "tls-ca.crt",
    "tls_cert": "alice.crt",
    "tls_key": "alice.key",
    "sts_sni": "sts.domain.com",
    "sts_address": "https://sts.domain.com:8081",
    "sts_audience": "https://server.domain.com:8443",
    "scope": "https://www.googleapis.com/auth/cloud-platform",
    "sts_cred": "iamtheeggman",
}


def env_var(name: str) -> str:
    """Return the environment variable consulted for option *name*.

    Example::

        env_var("sts_address")  # "STSFETCH_STS_ADDRESS"
    """
    return f"{ENV_PREFIX}{name.upper()}"


def build_config(
    *,
    sts_address: str,
    sts_sni: str,
    sts_audience: str,
    scope: str,
    sts_cred: str,
    resource_address: str,
    resource_sni: str,
    tls_ca: str,
    tls_cert: str,
    tls_key: str,
    tls_key_password: Optional[str] = None,
    resource_cert: Optional[str] = None,
    resource_key: Optional[str] = None,
    resource_key_password: Optional[str] = None,
    timeout: float = 30.0,
    deadline: Optional[float] = None,
    allow_error_status: bool = False,
) -> FetcherConfig:
    """Validate option values and return the run configuration.

    Raises:
        ConfigError: If the credential source cannot be resolved, only one
            of ``resource_cert``/``resource_key`` is given, or any value
            fails validation.
    """
    if (resource_cert is None) != (resource_key is None):
        raise ConfigError(
            "--resourceCert and --resourceKey must be given together",
            hint="Pass both options, or neither to reuse --tlsCert and --tlsKey.",
        )

    subject_token = resolve_credential(sts_cred)

    try:
        return FetcherConfig(
            sts_address=sts_address,
            sts_sni=sts_sni,
            sts_audience=sts_audience,
            scope=scope,
            subject_token=subject_token,
            resource_address=resource_address,
            resource_sni=resource_sni,
            tls=TlsConfig(
                ca_file=tls_ca,
                cert_file=tls_cert,
                key_file=tls_key,
                key_password=tls_key_password,
                resource_cert_file=resource_cert,
                resource_key_file=resource_key,
                resource_key_password=resource_key_password,
            ),
            timeout=timeout,
            deadline=deadline,
            allow_error_status=allow_error_status,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc


def resolve_credential(source: str) -> str:
    """Resolve the subject token from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- used verbatim as the credential

    Raises:
        ConfigError: If the variable is unset or the file can't be read.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})",
                hint=CREDENTIAL_HINT,
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(
                f"Credential file not found: {path} (source: {source})",
                hint=CREDENTIAL_HINT,
            )
        try:
            return path.read_text(encoding="utf-8").strip()
        except (OSError, ValueError) as exc:
            raise ConfigError(
                f"Cannot read credential file {path}: {exc}", hint=CREDENTIAL_HINT
            ) from exc

    return source
