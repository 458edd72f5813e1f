"""Data model produced by the request-file parser.

A :class:`RequestDescriptor` is everything needed to send one request:
method, URL, protocol version, ordinary headers, an auth directive and an
optional body. Multipart bodies carry a :class:`Form` of named
:class:`FormPart` objects whose content is exactly one of text, bytes or an
open file reference.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Union

from urllib3.util import Url

from httper.errors import EmptyBodyError, FormPartNameMissingError


class HttpMethod(str, enum.Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


class HttpVersion(str, enum.Enum):
    HTTP_09 = "HTTP/0.9"
    HTTP_10 = "HTTP/1.0"
    HTTP_11 = "HTTP/1.1"
    HTTP_2 = "HTTP/2.0"
    HTTP_3 = "HTTP/3.0"

    @classmethod
    def from_token(cls, token: str) -> "HttpVersion":
        """Map a request-line version token, falling back to HTTP/1.1."""
        normalized = token.strip().upper()
        aliases = {"HTTP/2": cls.HTTP_2, "HTTP/3": cls.HTTP_3}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            return cls.HTTP_11

    @classmethod
    def default_for(cls, url: Url) -> "HttpVersion":
        return cls.HTTP_2 if url.scheme == "https" else cls.HTTP_11


# --- Authentication directives ---


@dataclass(frozen=True)
class NoAuth:
    pass


@dataclass(frozen=True)
class BearerAuth:
    token: str


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str


AuthDirective = Union[NoAuth, BearerAuth, BasicAuth]


# --- Form part content ---


@dataclass(frozen=True)
class TextContent:
    text: str


@dataclass(frozen=True)
class BytesContent:
    data: bytes


@dataclass(frozen=True)
class FileContent:
    """A file referenced with ``< path``, opened for a single sequential read."""

    path: str
    handle: BinaryIO = field(repr=False, compare=False)

    def close(self) -> None:
        self.handle.close()


PartContent = Union[TextContent, BytesContent, FileContent]


class FormPart:
    """One named unit of a multipart form."""

    __slots__ = ("content", "filename", "headers")

    def __init__(
        self,
        content: PartContent | None,
        filename: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.content = content
        self.filename = filename
        self.headers = dict(headers) if headers else {}

    def __repr__(self) -> str:
        return (
            f"FormPart(content={self.content!r}, filename={self.filename!r}, "
            f"headers=<{len(self.headers)} headers>)"
        )

    def as_field(self) -> tuple:
        """Return the ``(filename, data, content_type, headers)`` tuple
        understood by ``requests`` for its ``files`` argument.

        The per-part content type is never forwarded, so it is always None.

        Raises:
            EmptyBodyError: If the part carries no content at all.
        """
        content = self.content
        if isinstance(content, TextContent):
            data = content.text
        elif isinstance(content, BytesContent):
            data = content.data
        elif isinstance(content, FileContent):
            data = content.handle
        else:
            raise EmptyBodyError(self.filename)

        return (self.filename, data, None, dict(self.headers))

    def close(self) -> None:
        if isinstance(self.content, FileContent):
            self.content.close()


class Form:
    """Multipart form parts keyed by name. Later parts replace earlier ones."""

    def __init__(self) -> None:
        self._parts: dict[str, FormPart] = {}

    def add(self, name: str, part: FormPart) -> None:
        if not name:
            raise FormPartNameMissingError()
        previous = self._parts.get(name)
        if previous is not None and previous is not part:
            previous.close()
        self._parts[name] = part

    def __getitem__(self, name: str) -> FormPart:
        return self._parts[name]

    def __contains__(self, name: object) -> bool:
        return name in self._parts

    def __iter__(self) -> Iterator[str]:
        return iter(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def items(self):
        return self._parts.items()

    def close(self) -> None:
        for part in self._parts.values():
            part.close()

    def __repr__(self) -> str:
        return f"Form(parts={list(self._parts)!r})"


# --- Bodies ---


@dataclass(frozen=True)
class RawBody:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class JsonBody:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class UrlEncodedBody:
    text: str
    content_type: str


@dataclass(frozen=True)
class MultipartBody:
    form: Form


Body = Union[RawBody, JsonBody, UrlEncodedBody, MultipartBody]


class RequestDescriptor:
    """A fully parsed request, ready to hand to an HTTP client.

    Owns any files opened for multipart file references; use it as a
    context manager (or call :meth:`close`) once the request has been sent.
    """

    __slots__ = (
        "method",
        "url",
        "parsed_url",
        "version",
        "headers",
        "auth",
        "body",
        "_closed",
    )

    def __init__(
        self,
        method: HttpMethod,
        url: str,
        parsed_url: Url,
        version: HttpVersion,
        headers: dict[str, str] | None = None,
        auth: AuthDirective | None = None,
        body: Body | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.parsed_url = parsed_url
        self.version = version
        self.headers = headers if headers is not None else {}
        self.auth = auth if auth is not None else NoAuth()
        self.body = body
        self._closed = False

    @property
    def scheme(self) -> str | None:
        return self.parsed_url.scheme

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if isinstance(self.body, MultipartBody):
            self.body.form.close()

    def __enter__(self) -> "RequestDescriptor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        body = type(self.body).__name__ if self.body is not None else "<none>"
        return (
            f"RequestDescriptor(method={self.method.value!r}, url={self.url!r}, "
            f"version={self.version.value!r}, "
            f"headers=<{len(self.headers)} headers>, "
            f"auth={type(self.auth).__name__}, body={body})"
        )
