"""HTTP channel and response formatting for stsfetch.

Classes:
    :class:`TlsChannel` -- one mutually-authenticated :class:`httpx.Client`
    per target server.

Example::

    from stsfetch.client import TlsChannel

    with TlsChannel("resource fetch", "server.domain.com", ctx, 30.0) as channel:
        response = channel.send("GET", "https://server.domain.com:8443")
"""

from stsfetch.client.channel import TlsChannel

__all__ = ["TlsChannel"]
