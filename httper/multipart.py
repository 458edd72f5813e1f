"""Assembly of ``multipart/form-data`` bodies written in a request file.

A multipart body is written the way it travels on the wire, with the
boundary taken from the declared Content-Type::

    --foo
    Content-Disposition: form-data; name="image"; filename="logo.png"

    < ./logo.png
    --foo
    Content-Disposition: form-data; name="title"

    some text
    --foo--

A body of the form ``< path`` streams the named file, resolved against the
directory holding the request file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import reduce

from httper.errors import FormDataBoundaryMissingError, FormPartNameMissingError
from httper.headers import (
    CONTENT_DISPOSITION,
    CONTENT_TYPE,
    fold_key,
    split_header_line,
)
from httper.models import (
    BytesContent,
    FileContent,
    Form,
    FormPart,
    PartContent,
    TextContent,
)

logger = logging.getLogger(__name__)

FILE_REFERENCE_MARKER = "<"


def _unquote(value: str) -> str:
    """Strip one layer of surrounding double quotes."""
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def _is_blank(line: str) -> bool:
    return not line.strip()


def extract_boundary(content_type: str) -> str:
    """Return the ``boundary`` parameter of a multipart Content-Type.

    Raises:
        FormDataBoundaryMissingError: If there is no non-empty boundary.
    """
    for param in content_type.split(";"):
        key, sep, value = param.partition("=")
        if not sep or fold_key(key) != "boundary":
            continue
        boundary = _unquote(value.strip())
        if boundary:
            return boundary

    raise FormDataBoundaryMissingError(content_type)


# --- Segment scanning ---


@dataclass(frozen=True)
class ScanState:
    """Accumulator threaded through the lines of one segment."""

    header_lines: tuple[str, ...] = ()
    body_lines: tuple[str, ...] = ()
    in_body: bool = False


def scan_step(state: ScanState, line: str) -> ScanState:
    """Advance the header/body scanner by one line.

    In the header section a blank line switches to the body only once at
    least one header line was seen; earlier blank lines are skipped. In the
    body every line is kept verbatim.
    """
    if state.in_body:
        return ScanState(
            state.header_lines, state.body_lines + (line,), in_body=True
        )

    if _is_blank(line):
        if state.header_lines:
            return ScanState(state.header_lines, state.body_lines, in_body=True)
        return state

    return ScanState(state.header_lines + (line,), state.body_lines)


def scan_segment(segment: str) -> ScanState:
    """Split one boundary-delimited segment into header and body lines.

    The line break just before the next delimiter belongs to the delimiter,
    so a single trailing newline does not produce an extra body line.
    """
    lines = segment.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return reduce(scan_step, lines, ScanState())


def _is_boundary_artifact(segment: str) -> bool:
    """Preamble, epilogue and the tail of the closing ``--B--`` delimiter."""
    return not segment.strip() or segment == "\n" or segment.startswith("--")


# --- Part headers ---


def extract_part_headers(
    header_lines: tuple[str, ...] | list[str],
) -> tuple[dict[str, str], str | None, str | None]:
    """Extract (headers, name, filename) from a part's header lines.

    Content-Type lines are dropped. The Content-Disposition line only
    contributes its ``name`` and ``filename`` parameters; every other line
    is stored as-is in the returned header map.

    Raises:
        InvalidHeaderError: If a header line has no colon.
    """
    headers: dict[str, str] = {}
    name: str | None = None
    filename: str | None = None

    for line in header_lines:
        folded = fold_key(line)

        if folded.startswith(CONTENT_TYPE):
            continue

        if folded.startswith(CONTENT_DISPOSITION):
            _, disposition = split_header_line(line)
            for param in disposition.split(";"):
                key, sep, value = param.partition("=")
                if not sep:
                    continue
                key = key.strip()
                if key == "name":
                    name = _unquote(value.strip())
                elif key == "filename":
                    filename = _unquote(value.strip())
            continue

        key, value = split_header_line(line)
        headers[key] = value

    return headers, name, filename


# --- Part content ---


def resolve_file_reference(body_text: str, base_directory: str) -> PartContent:
    """Classify a part body as text, bytes or a ``< path`` file reference.

    Args:
        body_text: The part's body, lines joined by newlines.
        base_directory: Directory containing the request file.

    Returns:
        ``TextContent("")`` for an empty body, a ``FileContent`` holding an
        open binary handle for ``< path``, otherwise ``BytesContent``.

    Raises:
        OSError: If the referenced file cannot be opened.
    """
    if not body_text:
        return TextContent("")

    if body_text.startswith(FILE_REFERENCE_MARKER):
        relative = body_text[len(FILE_REFERENCE_MARKER):].strip()
        # Always below base_directory, even for paths written as absolute
        path = os.path.join(base_directory, relative.lstrip("/"))
        logger.debug("Opening file reference %s", path)
        return FileContent(path=path, handle=open(path, "rb"))

    return BytesContent(body_text.encode("utf-8"))


def assemble_form(content_type: str, body_text: str, base_directory: str) -> Form:
    """Build a :class:`Form` from a multipart body.

    Args:
        content_type: The declared Content-Type, carrying ``boundary=``.
        body_text: The raw multipart body.
        base_directory: Directory that ``< path`` references resolve against.

    Returns:
        The assembled form. Files opened for already-assembled parts are
        closed again if a later part fails.

    Raises:
        FormDataBoundaryMissingError: If the boundary parameter is absent.
        FormPartNameMissingError: If a part has no ``name``.
        InvalidHeaderError: If a part header line has no colon.
        OSError: If a referenced file cannot be opened.
    """
    boundary = extract_boundary(content_type)
    delimiter = f"--{boundary}"
    form = Form()

    try:
        for segment in body_text.replace("\r\n", "\n").split(delimiter):
            if _is_boundary_artifact(segment):
                continue

            scanned = scan_segment(segment)
            if not scanned.header_lines:
                logger.debug("Skipping multipart segment without headers")
                continue

            headers, name, filename = extract_part_headers(scanned.header_lines)
            if not name:
                raise FormPartNameMissingError("\n".join(scanned.header_lines))

            content = resolve_file_reference(
                "\n".join(scanned.body_lines), base_directory
            )
            logger.debug(
                "Form part %r: %s%s",
                name,
                type(content).__name__,
                f" ({filename})" if filename else "",
            )
            form.add(name, FormPart(content, filename=filename, headers=headers))
    except Exception:
        form.close()
        raise

    return form
