"""Sending parsed requests with the requests library and reporting results."""

from __future__ import annotations

import logging
import time

import requests
import urllib3
from requests.auth import AuthBase, HTTPBasicAuth
from requests.structures import CaseInsensitiveDict

from httper.headers import fold_key
from httper.models import (
    BasicAuth,
    BearerAuth,
    HttpVersion,
    JsonBody,
    MultipartBody,
    RawBody,
    RequestDescriptor,
    UrlEncodedBody,
)

logger = logging.getLogger(__name__)

# Certificate verification is opt-in (--verify); keep the console quiet
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

DEFAULT_TIMEOUT = 30

# Recomputed by requests from the body actually sent
MANAGED_HEADERS = ("content-length",)


class HTTPBearerAuth(AuthBase):
    """Attaches ``Authorization: Bearer <token>`` to a request."""

    def __init__(self, token: str) -> None:
        self.token = token

    def __eq__(self, other: object) -> bool:
        return isinstance(other, HTTPBearerAuth) and self.token == other.token

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self.token}"
        return r


class ExchangeResult:
    """Container for the response to a sent request."""

    __slots__ = (
        "status_code",
        "reason",
        "headers",
        "content",
        "elapsed",
    )

    def __init__(
        self,
        status_code: int,
        reason: str,
        headers: dict[str, str],
        content: bytes,
        elapsed: float,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers)
        self.content = content
        self.elapsed = elapsed

    @property
    def content_length(self) -> int:
        declared = self.headers.get("Content-Length")
        if declared is not None and declared.isdigit():
            return int(declared)
        return len(self.content)


def build_request_kwargs(descriptor: RequestDescriptor) -> dict:
    """Map a RequestDescriptor onto ``requests.request`` keyword arguments.

    Multipart file references are passed as open handles, so the descriptor
    must stay open until the request has been sent.
    """
    headers = {
        key: value
        for key, value in descriptor.headers.items()
        if fold_key(key) not in MANAGED_HEADERS
    }
    kwargs: dict = {
        "method": descriptor.method.value,
        "url": descriptor.url,
        "headers": headers,
    }

    auth = descriptor.auth
    if isinstance(auth, BearerAuth):
        kwargs["auth"] = HTTPBearerAuth(auth.token)
    elif isinstance(auth, BasicAuth):
        kwargs["auth"] = HTTPBasicAuth(auth.username, auth.password)

    body = descriptor.body
    if isinstance(body, (JsonBody, RawBody)):
        headers["Content-Type"] = body.content_type
        kwargs["data"] = body.data
    elif isinstance(body, UrlEncodedBody):
        headers["Content-Type"] = body.content_type
        kwargs["data"] = body.text
    elif isinstance(body, MultipartBody):
        # requests writes its own boundary and Content-Type
        kwargs["files"] = {
            name: part.as_field() for name, part in body.form.items()
        }

    return kwargs


def send_request(
    descriptor: RequestDescriptor,
    proxy: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    verify: bool = False,
) -> ExchangeResult:
    """Send a parsed request and collect the response.

    The descriptor is closed afterwards whether or not sending succeeded,
    releasing any files opened for multipart parts.

    Args:
        descriptor: The parsed request.
        proxy: Optional proxy URL used for both http and https.
        timeout: Request timeout in seconds.
        verify: Whether to verify TLS certificates.

    Returns:
        An ExchangeResult with the response status, headers and body.
    """
    with descriptor:
        if descriptor.version not in (HttpVersion.HTTP_10, HttpVersion.HTTP_11):
            logger.debug(
                "%s requested; requests sends HTTP/1.1", descriptor.version.value
            )

        proxies = None
        if proxy:
            proxies = {"http": proxy, "https": proxy}

        start = time.perf_counter()
        response = requests.request(
            **build_request_kwargs(descriptor),
            proxies=proxies,
            timeout=timeout,
            verify=verify,
            allow_redirects=False,
        )
        content = response.content
        elapsed = time.perf_counter() - start

    return ExchangeResult(
        status_code=response.status_code,
        reason=response.reason or "",
        headers=response.headers,
        content=content,
        elapsed=elapsed,
    )


def save_response(result: ExchangeResult, filepath: str) -> None:
    """Write the raw response body to ``filepath``."""
    with open(filepath, "wb") as fh:
        fh.write(result.content)


def print_report(result: ExchangeResult, verbose: bool = False) -> None:
    """Print a summary of the exchange to stdout.

    Args:
        result: The ExchangeResult of a sent request.
        verbose: Also print response headers and body.
    """
    length = result.content_length

    if verbose:
        print("\n  Response Headers:")
        for key, value in result.headers.items():
            print(f"    {key}: {value}")
        if result.content:
            text = result.content.decode("utf-8", errors="replace")
            print(f"\n  Response Body:\n{text}")

    print(
        f"\nResponse code: {result.status_code} {result.reason}".rstrip()
        + f"; Time: {result.elapsed * 1000:.0f}ms"
        + f"; Content length: {length} bytes ({length / 1_000_000:.2f} MB)"
    )
