"""Response formatting bridge -- maps a :class:`~stsfetch.models.FetchResult` to the output system.

The status line goes to stderr via
:meth:`~stsfetch.output.OutputManager.info`; the body goes to stdout via
:meth:`~stsfetch.output.OutputManager.format_response`.
"""

from __future__ import annotations

import json
from typing import Any

from stsfetch.models import FetchResult
from stsfetch.output import OutputFormat, get_output


def format_fetch_result(result: FetchResult) -> None:
    """Print the resource response using the global output system.

    * **JSON mode** -- an envelope ``{"status": ..., "body": ...}``.
    * **Plain mode** -- the body text exactly as received.
    * **Rich mode** -- JSON bodies are syntax highlighted.

    Args:
        result: The fetched resource.
    """
    output = get_output()

    line = f"Resource: HTTP {result.status_code} {result.reason_phrase}".rstrip()
    if result.is_success:
        output.info(line)
    else:
        output.warning(line)

    if output.format == OutputFormat.JSON:
        output.format_response({"status": result.status_code, "body": extract_body(result)})
    elif output.format == OutputFormat.PLAIN:
        output.format_response(result.text, result.content_type or "text/plain")
    else:
        body = extract_body(result)
        if body is not None:
            output.format_response(body, result.content_type or "text/plain")


def extract_body(result: FetchResult) -> Any:
    """Decode the body as JSON if possible, otherwise return the text.

    Returns ``None`` for an empty body.
    """
    if not result.body:
        return None

    try:
        return json.loads(result.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return result.text
