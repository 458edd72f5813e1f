"""Error taxonomy for request-file parsing.

Every parse failure derives from :class:`RequestFileError`, itself a
``ValueError`` so callers that only care about "malformed input" can keep
catching ``ValueError``. Failures to open a ``< path`` file reference are
not wrapped: they surface as the built-in ``OSError`` subclasses.
"""

from __future__ import annotations


class RequestFileError(ValueError):
    """Base class for all request-file parse failures."""

    message = "Invalid request file"

    def __init__(self, fragment: str | None = None) -> None:
        self.fragment = fragment
        if fragment is None:
            super().__init__(self.message)
        else:
            super().__init__(f"{self.message}: {fragment!r}")


class EmptyRequestError(RequestFileError):
    message = "Empty request file"


class NoRequestLineError(RequestFileError):
    message = "No request line found"


class NotEnoughPartsError(RequestFileError):
    message = "Not enough parts in request line"


class InvalidMethodError(RequestFileError):
    message = "Invalid method"


class InvalidUrlError(RequestFileError):
    message = "Invalid url"


class InvalidHeaderError(RequestFileError):
    message = "Invalid header"


class FormDataBoundaryMissingError(RequestFileError):
    message = "Missing form data boundary"


class FormPartNameMissingError(RequestFileError):
    message = "Form part lacks a name"


class EmptyBodyError(RequestFileError):
    message = "Form part has no body"
