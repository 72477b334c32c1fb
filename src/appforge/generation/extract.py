"""Recover a standalone HTML document from free-text model output."""

from __future__ import annotations

import re

# Closing fences sit on their own line; backticks inside a line are content.
# A missing closing fence still yields the body of a truncated response.
_HTML_FENCE = re.compile(
    r"```[ \t]*html[ \t]*\r?\n(.*?)(?:^[ \t]*```[ \t]*\r?$|\Z)", re.S | re.I | re.M
)
_ANY_FENCE = re.compile(r"```[^\n`]*\r?\n(.*?)(?:^[ \t]*```[ \t]*\r?$|\Z)", re.S | re.M)

_DOCUMENT_ROOTS = ("<!doctype", "<html")

_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Generated App</title>
</head>
<body>
{body}
</body>
</html>"""


def extract_html(raw: str | None) -> str:
    """Return a renderable HTML document; never raises.

    Priority: ```html fence, then the first fence of any tag, then the raw
    text. Anything that does not start with a document root is wrapped in a
    minimal shell.
    """
    text = (raw or "").strip()

    match = _HTML_FENCE.search(text) or _ANY_FENCE.search(text)
    if match:
        text = match.group(1)
    text = text.strip()

    if is_standalone_document(text):
        return text
    return wrap_in_shell(text)


def is_standalone_document(text: str) -> bool:
    return text.lstrip().lower().startswith(_DOCUMENT_ROOTS)


def wrap_in_shell(body: str) -> str:
    return _SHELL.format(body=body)
