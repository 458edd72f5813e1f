"""Selection of a body encoding from the declared Content-Type."""

from __future__ import annotations

import logging

from httper.models import Body, JsonBody, MultipartBody, RawBody, UrlEncodedBody
from httper.multipart import assemble_form

logger = logging.getLogger(__name__)

JSON = "application/json"
URL_ENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


def media_type(content_type: str) -> str:
    """Return the primary token of a Content-Type, before any ``;``."""
    return content_type.split(";", 1)[0].strip()


def dispatch_body(content_type: str, body_text: str, base_directory: str) -> Body:
    """Build the request body for the declared content type.

    JSON and raw bodies are sent as the literal text; URL-encoded bodies are
    taken as already encoded; multipart bodies are assembled into a form.
    """
    primary = media_type(content_type)
    logger.debug("Body strategy for %r", primary)

    if primary == JSON:
        return JsonBody(data=body_text.encode("utf-8"), content_type=content_type)

    if primary == URL_ENCODED:
        return UrlEncodedBody(text=body_text, content_type=content_type)

    if primary == MULTIPART:
        return MultipartBody(
            form=assemble_form(content_type, body_text, base_directory)
        )

    return RawBody(data=body_text.encode("utf-8"), content_type=content_type)
