"""Variable substitution from an environment file.

An environment file is a JSON object mapping environment names to
variables::

    {
        "dev": {"host": "localhost:8080", "token": "dev-token"},
        "prod": {"host": "api.example.com", "token": "..."}
    }

Placeholders such as ``{{host}}`` in a request file are replaced with the
selected environment's values before parsing.
"""

from __future__ import annotations

import json
import re
from typing import Any

PLACEHOLDER = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


class EnvironmentFileError(ValueError):
    """Raised when an environment file or name cannot be used."""


def load_environments(filepath: str) -> dict[str, dict[str, Any]]:
    """Load every environment defined in ``filepath``.

    Raises:
        FileNotFoundError: If the file does not exist.
        EnvironmentFileError: If the file is not a JSON object of objects.
    """
    with open(filepath, "r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise EnvironmentFileError(
                f"Cannot decode env file {filepath!r}: {exc}"
            ) from exc

    if not isinstance(data, dict):
        raise EnvironmentFileError(f"Env file {filepath!r} must hold a JSON object")

    for name, variables in data.items():
        if not isinstance(variables, dict):
            raise EnvironmentFileError(
                f"Environment {name!r} must be an object, "
                f"got: {type(variables).__name__}"
            )

    return data


def select_environment(
    environments: dict[str, dict[str, Any]], name: str
) -> dict[str, Any]:
    try:
        return environments[name]
    except KeyError:
        known = ", ".join(sorted(environments)) or "<none>"
        raise EnvironmentFileError(
            f"Unknown environment {name!r} (known: {known})"
        ) from None


def substitute(text: str, variables: dict[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as written."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(replace, text)
