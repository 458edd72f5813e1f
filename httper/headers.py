"""Header block parsing and Authorization handling.

Header names are compared case-insensitively everywhere through
:func:`fold_key`; stored keys keep the case they were written in.
"""

from __future__ import annotations

import logging

from httper.errors import InvalidHeaderError
from httper.models import AuthDirective, BasicAuth, BearerAuth, NoAuth

logger = logging.getLogger(__name__)

CONTENT_TYPE = "content-type"
CONTENT_DISPOSITION = "content-disposition"
AUTHORIZATION = "authorization"


def fold_key(key: str) -> str:
    """Normalize a header name or parameter key for comparison."""
    return key.strip().lower()


def keys_match(key: str, expected: str) -> bool:
    return fold_key(key) == fold_key(expected)


def split_header_line(line: str) -> tuple[str, str]:
    """Split ``Key: value`` on the first colon, trimming both sides.

    Raises:
        InvalidHeaderError: If the line has no colon.
    """
    key, sep, value = line.partition(":")
    if not sep:
        raise InvalidHeaderError(line)
    return key.strip(), value.strip()


def resolve_auth(header_value: str) -> AuthDirective:
    """Turn an Authorization value into an auth directive.

    Only the ``Bearer`` and ``Basic`` schemes are recognized; any other
    value yields :class:`NoAuth` and should be kept as an ordinary header.
    Basic credentials are written as ``Basic <username> <password>``.

    Raises:
        InvalidHeaderError: If Basic credentials lack the separating space.
    """
    value = header_value.strip()

    if value.startswith("Bearer"):
        return BearerAuth(token=value[len("Bearer"):].strip())

    if value.startswith("Basic"):
        credentials = value[len("Basic"):].strip()
        username, sep, password = credentials.partition(" ")
        if not sep:
            raise InvalidHeaderError(credentials)
        return BasicAuth(username=username, password=password)

    return NoAuth()


def parse_header_section(
    header_block: str,
) -> tuple[str | None, AuthDirective, dict[str, str]]:
    """Parse the header lines between the request line and the body.

    Args:
        header_block: Newline-separated header lines.

    Returns:
        A tuple of (content_type, auth, headers). Content-Type and
        recognized Authorization lines are diverted out of ``headers``;
        for duplicate keys the last occurrence wins.

    Raises:
        InvalidHeaderError: If a non-blank line has no colon, or Basic
            credentials are malformed.
    """
    content_type: str | None = None
    auth: AuthDirective = NoAuth()
    headers: dict[str, str] = {}

    for line in header_block.split("\n"):
        if not line.strip():
            continue

        key, value = split_header_line(line)

        if keys_match(key, CONTENT_TYPE):
            content_type = value
            continue

        if keys_match(key, AUTHORIZATION):
            directive = resolve_auth(value)
            if not isinstance(directive, NoAuth):
                logger.debug("Using %s auth", type(directive).__name__)
                auth = directive
                continue

        set_header(headers, key, value)

    return content_type, auth, headers


def set_header(headers: dict[str, str], key: str, value: str) -> None:
    """Store a header, replacing any existing key that differs only in case."""
    for existing in [k for k in headers if keys_match(k, key)]:
        del headers[existing]
    headers[key] = value
