"""Request-file parsing.

Turns a plain-text request file into a :class:`RequestDescriptor`::

    # comment lines start with '#' or '//'
    POST https://api.example.com/items HTTP/1.1
    Authorization: Bearer abc123
    Content-Type: application/json

    {"name": "widget"}

Several requests may share one file, separated by lines starting with
``###``.
"""

from __future__ import annotations

import logging
import os
import re

from urllib3.exceptions import LocationParseError
from urllib3.util import Url, parse_url

from httper.body import dispatch_body
from httper.errors import (
    EmptyRequestError,
    InvalidMethodError,
    InvalidUrlError,
    NoRequestLineError,
    NotEnoughPartsError,
)
from httper.headers import parse_header_section
from httper.models import HttpMethod, HttpVersion, RequestDescriptor

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("//", "#")

REQUEST_SEPARATOR = re.compile(r"^###.*$", re.MULTILINE)


def _is_blank(line: str) -> bool:
    return not line.strip()


def strip_comments(text: str) -> list[str]:
    """Return the lines of ``text`` that are not comments.

    Comments are removed everywhere, body included.
    """
    return [
        line for line in text.split("\n") if not line.startswith(COMMENT_PREFIXES)
    ]


def find_request_line(lines: list[str]) -> int:
    """Return the index of the first non-blank line.

    Raises:
        NoRequestLineError: If every line is blank.
    """
    for index, line in enumerate(lines):
        if not _is_blank(line):
            return index
    raise NoRequestLineError()


def parse_method(token: str) -> HttpMethod:
    try:
        return HttpMethod(token)
    except ValueError as exc:
        raise InvalidMethodError(token) from exc


def parse_url_token(token: str) -> Url:
    """Parse an absolute URL; a scheme and a host are both required."""
    try:
        url = parse_url(token)
    except LocationParseError as exc:
        raise InvalidUrlError(token) from exc

    if not url.scheme or not url.host:
        raise InvalidUrlError(token)
    return url


def split_head_and_body(lines: list[str]) -> tuple[list[str], list[str]]:
    """Split lines at the first blank line into (header lines, body lines)."""
    for index, line in enumerate(lines):
        if _is_blank(line):
            return lines[:index], lines[index + 1 :]
    return lines, []


def parse_request(raw_text: str, base_directory: str = ".") -> RequestDescriptor:
    """Parse one request into its components.

    Handles:
      - Comment lines (``#`` or ``//``) anywhere in the file
      - Request line ``METHOD URL [VERSION]``, version defaulting by scheme
      - Header block up to the first blank line (``\\r\\n`` tolerated)
      - Bearer/Basic Authorization headers turned into auth directives
      - JSON, URL-encoded, multipart or raw bodies chosen by Content-Type

    Args:
        raw_text: The request file contents.
        base_directory: Directory that multipart ``< path`` references are
            resolved against, normally the one holding the request file.

    Returns:
        A RequestDescriptor. It owns any files opened for the body.

    Raises:
        RequestFileError: If the request is malformed (a ValueError).
        OSError: If a referenced file cannot be opened.
    """
    lines = strip_comments(raw_text.replace("\r\n", "\n"))
    if all(_is_blank(line) for line in lines):
        raise EmptyRequestError()

    index = find_request_line(lines)
    request_line = lines[index].strip()

    tokens = request_line.split(" ")
    if len(tokens) < 2:
        raise NotEnoughPartsError(request_line)

    method = parse_method(tokens[0])
    parsed_url = parse_url_token(tokens[1])
    if len(tokens) > 2:
        version = HttpVersion.from_token(tokens[2])
    else:
        version = HttpVersion.default_for(parsed_url)

    logger.debug("Request line: %s %s %s", method.value, tokens[1], version.value)

    header_lines, body_lines = split_head_and_body(lines[index + 1 :])
    body_text = "\n".join(body_lines)

    content_type, auth, headers = parse_header_section("\n".join(header_lines))

    body = None
    if content_type is not None:
        body = dispatch_body(content_type, body_text, base_directory)
    elif not _is_blank(body_text):
        logger.warning("Ignoring request body: no Content-Type header declared")

    return RequestDescriptor(
        method=method,
        url=tokens[1],
        parsed_url=parsed_url,
        version=version,
        headers=headers,
        auth=auth,
        body=body,
    )


def split_requests(raw_text: str) -> list[str]:
    """Split a file into request chunks on ``###`` separator lines."""
    return REQUEST_SEPARATOR.split(raw_text.replace("\r\n", "\n"))


def parse_requests(raw_text: str, base_directory: str = ".") -> list[RequestDescriptor]:
    """Parse every request in a file, skipping chunks with nothing but comments.

    Raises:
        RequestFileError: If the file holds no request, or one is malformed.
            Descriptors parsed before the failure are closed.
    """
    requests: list[RequestDescriptor] = []
    try:
        for chunk in split_requests(raw_text):
            if all(_is_blank(line) for line in strip_comments(chunk)):
                continue
            requests.append(parse_request(chunk, base_directory))
    except Exception:
        for descriptor in requests:
            descriptor.close()
        raise

    if not requests:
        raise EmptyRequestError()
    return requests


def request_directory(filepath: str) -> str:
    """Return the directory that file references in ``filepath`` resolve against."""
    return os.path.dirname(os.path.abspath(filepath))


def load_request_file(filepath: str) -> str:
    """Read and return the contents of a request file.

    Args:
        filepath: Path to the request file.

    Returns:
        The text content of the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    with open(filepath, "r", encoding="utf-8") as fh:
        return fh.read()
