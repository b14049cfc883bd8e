"""Root index resolution: index document -> per-module document addresses."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

from pydantic import BaseModel, ConfigDict, ValidationError

from stabcrawl.errors import TransformError

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^\)]+)\.html\)")


class IndexEntry(BaseModel):
    """One entry of the index's ``desc`` list; only ``text`` matters here."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    text: str | None = None


class IndexDocument(BaseModel):
    """The machine-readable documentation index (``index.json``)."""

    model_config = ConfigDict(extra="ignore")

    desc: list[IndexEntry] = []


def parse_index(content: str | bytes) -> IndexDocument:
    """Validate raw index JSON.

    Raises:
        TransformError: ``malformed_payload`` when the JSON is invalid or
            does not look like an index document.
    """
    try:
        return IndexDocument.model_validate_json(content)
    except ValidationError as e:
        raise TransformError(
            f"Invalid index document: {e.error_count()} validation error(s)",
            kind="malformed_payload",
            hint=str(e).splitlines()[0] if str(e) else None,
        ) from e


def module_names(index: IndexDocument) -> list[str]:
    """Extract linked module short names (``fs`` from ``[File System](fs.html)``).

    Entries without a link are skipped.
    """
    names: list[str] = []
    for entry in index.desc:
        if entry.text is None:
            continue
        match = _LINK_RE.search(entry.text)
        if match is None:
            logger.debug("Skipping index entry without a link: %r", entry.text)
            continue
        names.append(match.group(2))
    return names


def module_addresses(index: IndexDocument, index_address: str) -> list[str]:
    """Build per-module JSON addresses relative to the index's location."""
    return [urljoin(index_address, f"{name}.json") for name in module_names(index)]
