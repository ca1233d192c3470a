"""stsfetch -- OAuth2 token exchange over mutual TLS, then an authenticated fetch.

The client trades a subject credential for an access token at a security
token service (:rfc:`8693`), then presents that token as a bearer credential
to a resource server. Both hops run over mutually-authenticated TLS with
independently configured server names.

Typical invocation::

    stsfetch --stsaddress https://sts.domain.com:8081 \\
             --resourceAddress https://server.domain.com:8443 \\
             --tlsCA tls-ca.crt --tlsCert alice.crt --tlsKey alice.key

Modules:
    app: Typer CLI entry point.
    models: Pydantic models shared across the package.
    config: Builds the immutable run configuration.
    tls: Client identity, trust root and SSL context construction.
    exchange: Token exchange phase.
    fetch: Authenticated fetch phase.
    workflow: Sequences the two phases.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
