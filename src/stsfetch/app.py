"""Typer application and CLI entry point for stsfetch.

The single command gathers options (flags first, then ``STSFETCH_*``
environment variables, then defaults), installs the global
:class:`~stsfetch.output.OutputManager`, builds the frozen run
configuration, and runs the token exchange followed by the authenticated
fetch.

Each :class:`~stsfetch.exceptions.StsFetchError` ends the run with its own
exit code (see :mod:`stsfetch.exit_codes`), so scripts can tell a refused
exchange from a bad certificate without reading stderr.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from typing import Any, Optional

import typer

from stsfetch import __version__, workflow
from stsfetch.config import DEFAULTS, build_config, env_var
from stsfetch.exceptions import ConfigError, StsFetchError
from stsfetch.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="stsfetch",
    help="Exchange a credential for a token at an STS, then fetch a resource with it over mutual TLS.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"stsfetch {__version__}")
        raise typer.Exit()


@app.command()
def fetch_command(
    resource_address: str = typer.Option(
        DEFAULTS["resource_address"], "--resourceAddress",
        envvar=env_var("resource_address"), help="URL of the resource server.",
    ),
    resource_sni: str = typer.Option(
        DEFAULTS["resource_sni"], "--resourceSNI",
        envvar=env_var("resource_sni"), help="TLS server name of the resource server.",
    ),
    tls_ca: str = typer.Option(
        DEFAULTS["tls_ca"], "--tlsCA",
        envvar=env_var("tls_ca"), help="PEM file of trusted CA certificates.",
    ),
    tls_cert: str = typer.Option(
        DEFAULTS["tls_cert"], "--tlsCert",
        envvar=env_var("tls_cert"), help="TLS client certificate.",
    ),
    tls_key: str = typer.Option(
        DEFAULTS["tls_key"], "--tlsKey",
        envvar=env_var("tls_key"), help="TLS client key.",
    ),
    tls_key_password: Optional[str] = typer.Option(
        None, "--tlsKeyPassword",
        envvar=env_var("tls_key_password"), help="Password of an encrypted client key.",
    ),
    resource_cert: Optional[str] = typer.Option(
        None, "--resourceCert",
        envvar=env_var("resource_cert"),
        help="Client certificate for the resource server only (defaults to --tlsCert).",
    ),
    resource_key: Optional[str] = typer.Option(
        None, "--resourceKey",
        envvar=env_var("resource_key"),
        help="Client key for the resource server only (defaults to --tlsKey).",
    ),
    resource_key_password: Optional[str] = typer.Option(
        None, "--resourceKeyPassword",
        envvar=env_var("resource_key_password"),
        help="Password of an encrypted --resourceKey (defaults to --tlsKeyPassword).",
    ),
    sts_sni: str = typer.Option(
        DEFAULTS["sts_sni"], "--stsSNI",
        envvar=env_var("sts_sni"), help="TLS server name of the STS.",
    ),
    sts_address: str = typer.Option(
        DEFAULTS["sts_address"], "--stsaddress",
        envvar=env_var("sts_address"), help="STS token endpoint URL.",
    ),
    sts_audience: str = typer.Option(
        DEFAULTS["sts_audience"], "--stsaudience",
        envvar=env_var("sts_audience"),
        help="Audience and resource value sent to the STS.",
    ),
    scope: str = typer.Option(
        DEFAULTS["scope"], "--scope",
        envvar=env_var("scope"), help="Scope sent to the STS.",
    ),
    sts_cred: str = typer.Option(
        DEFAULTS["sts_cred"], "--stsCred",
        envvar=env_var("sts_cred"),
        help="Subject token sent to the STS: a literal, env:VAR or file:/path.",
    ),
    timeout: float = typer.Option(
        30.0, "--timeout",
        envvar=env_var("timeout"), help="Per-request timeout in seconds.",
    ),
    deadline: Optional[float] = typer.Option(
        None, "--deadline",
        envvar=env_var("deadline"), help="Overall time budget for both requests in seconds.",
    ),
    allow_error_status: bool = typer.Option(
        False, "--allow-error-status",
        help="Print non-2xx resource responses instead of failing.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Exchange a token at the STS and fetch the resource with it."""
    from stsfetch.client.response import format_fetch_result
    from stsfetch.output import OutputFormat, OutputManager, set_output

    output = OutputManager(
        format=OutputFormat.JSON if json_output else OutputFormat.AUTO,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
        output_file=output_file,
    )
    set_output(output)

    try:
        config = build_config(
            sts_address=sts_address,
            sts_sni=sts_sni,
            sts_audience=sts_audience,
            scope=scope,
            sts_cred=sts_cred,
            resource_address=resource_address,
            resource_sni=resource_sni,
            tls_ca=tls_ca,
            tls_cert=tls_cert,
            tls_key=tls_key,
            tls_key_password=tls_key_password,
            resource_cert=resource_cert,
            resource_key=resource_key,
            resource_key_password=resource_key_password,
            timeout=timeout,
            deadline=deadline,
            allow_error_status=allow_error_status,
        )
        output.debug(f"Configuration: {config!r}")

        result = workflow.run_workflow(config)
    except ConfigError as exc:
        output.error(str(exc))
        if exc.hint:
            output.suggest(exc.hint)
        raise typer.Exit(code=exc.exit_code)
    except StsFetchError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    output.success("Token obtained.")
    format_fetch_result(result.resource)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``stsfetch`` console script.

    Expected failures are handled inside the command and exit with their
    own codes. Anything else is reported as an unexpected error, with the
    traceback when ``--verbose`` was passed, and exits with
    :data:`~stsfetch.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from stsfetch.output import error, get_output

        error(f"Unexpected error: {exc}")
        if get_output().is_verbose:
            sys.stderr.write(traceback.format_exc())
        sys.exit(EXIT_GENERIC_FAILURE)
