"""Front-matter extraction for Tessera.

Markdown documents may start with a YAML block delimited by `---` lines. The block
becomes the document's metadata; the rest is the Markdown body.

Key functions:
- extract_frontmatter: Split metadata from body.
- scalar_metadata: Keep only the flat values usable as component props.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

_SCALARS = (str, int, float, bool)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Invalid YAML, or YAML that is not a mapping, is left in the body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content).
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return {str(key): value for key, value in data.items()}, text[match.end() :]


def scalar_metadata(metadata: dict[str, Any]) -> dict[str, str]:
    """Return the flat metadata values as strings.

    Dates are rendered in ISO format; lists, mappings and nulls are dropped.
    """
    flat: dict[str, str] = {}
    for key, value in metadata.items():
        if isinstance(value, bool):
            flat[key] = "true" if value else "false"
        elif isinstance(value, _SCALARS):
            flat[key] = str(value)
        elif hasattr(value, "isoformat"):
            flat[key] = value.isoformat()
    return flat
