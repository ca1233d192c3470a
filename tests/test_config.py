"""Tests for building the run configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from stsfetch.config import DEFAULTS, build_config, env_var, resolve_credential
from stsfetch.exceptions import ConfigError


def _options(**overrides: Any) -> dict[str, Any]:
    options: dict[str, Any] = dict(DEFAULTS)
    options.update(overrides)
    return options


class TestBuildConfig:
    def test_defaults(self) -> None:
        config = build_config(**_options())
        assert config.sts_address == "https://sts.domain.com:8081"
        assert config.sts_sni == "sts.domain.com"
        assert config.resource_address == "https://server.domain.com:8443"
        assert config.resource_sni == "server.domain.com"
        assert config.sts_audience == "https://server.domain.com:8443"
        assert config.scope == "https://www.googleapis.com/auth/cloud-platform"
        assert config.subject_token == "iamtheeggman"
        assert config.tls.ca_file == "tls-ca.crt"
        assert config.tls.cert_file == "alice.crt"
        assert config.tls.key_file == "alice.key"
        assert config.tls.resource_cert_file is None
        assert config.timeout == 30.0
        assert config.deadline is None
        assert config.allow_error_status is False

    def test_values_pass_through(self) -> None:
        config = build_config(
            **_options(sts_cred="abc", sts_audience="https://svc:8443", scope="read")
        )
        assert config.subject_token == "abc"
        assert config.sts_audience == "https://svc:8443"
        assert config.scope == "read"

    def test_config_is_frozen(self) -> None:
        config = build_config(**_options())
        with pytest.raises(ValidationError):
            config.scope = "other"  # type: ignore[misc]

    def test_resource_identity_requires_both_files(self) -> None:
        with pytest.raises(ConfigError, match="together"):
            build_config(**_options(resource_cert="bob.crt"))

    def test_resource_identity(self) -> None:
        config = build_config(**_options(resource_cert="bob.crt", resource_key="bob.key"))
        assert config.tls.resource_cert_file == "bob.crt"
        assert config.tls.resource_key_file == "bob.key"

    def test_invalid_url_is_config_error(self) -> None:
        with pytest.raises(ConfigError, match="sts_address"):
            build_config(**_options(sts_address="sts.domain.com:8081"))

    def test_negative_deadline_is_config_error(self) -> None:
        with pytest.raises(ConfigError, match="deadline"):
            build_config(**_options(deadline=-1.0))


class TestResolveCredential:
    def test_literal(self) -> None:
        assert resolve_credential("iamtheeggman") == "iamtheeggman"

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUBJECT_TOKEN", "from-env")
        assert resolve_credential("env:SUBJECT_TOKEN") == "from-env"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SUBJECT_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="SUBJECT_TOKEN"):
            resolve_credential("env:SUBJECT_TOKEN")

    def test_file(self, tmp_path: Path) -> None:
        cred = tmp_path / "token"
        cred.write_text("  from-file\n")
        assert resolve_credential(f"file:{cred}") == "from-file"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")


def test_env_var_names() -> None:
    assert env_var("sts_address") == "STSFETCH_STS_ADDRESS"
    assert env_var("tls_ca") == "STSFETCH_TLS_CA"
