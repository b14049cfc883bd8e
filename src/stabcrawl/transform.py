"""Turn one fetched module document into a ``ModuleRecord``.

The documentation JSON records a module's stability in several different
shapes. Resolution is an ordered list of rules: the first rule whose
predicate applies decides, and an extractor that trips over malformed
nesting yields ``"unknown"`` instead of failing the record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
import json
import logging
from pathlib import PurePosixPath
import re
from typing import Any
from urllib.parse import urlparse

from stabcrawl.errors import TransformError
from stabcrawl.types import UNKNOWN, ModuleRecord, Stability

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"doc/api/(\w+)\.(?:markdown|md)")
_CRYPTO_RE = re.compile(r"crypto")
_STABILITY_TEXT_RE = re.compile(r"Stability: (\d)")


@dataclass(frozen=True)
class StabilityRule:
    """One known schema variant for a module's stability."""

    name: str
    applies: Callable[[str, Mapping[str, Any]], bool]
    extract: Callable[[Mapping[str, Any]], Any]


def _crypto_stability(doc: Mapping[str, Any]) -> Any:
    match = _STABILITY_TEXT_RE.search(doc["modules"][0]["desc"])
    if match is None:
        return None
    return match.group(1)


RULES: tuple[StabilityRule, ...] = (
    StabilityRule(
        "crypto_override",
        lambda name, _doc: bool(_CRYPTO_RE.search(name)),
        _crypto_stability,
    ),
    StabilityRule(
        "top_level",
        lambda _name, doc: "stability" in doc,
        lambda doc: doc["stability"],
    ),
    StabilityRule(
        "miscs",
        lambda _name, doc: "miscs" in doc,
        lambda doc: doc["miscs"][0]["miscs"][1]["stability"],
    ),
    StabilityRule(
        "modules",
        lambda _name, doc: "modules" in doc,
        lambda doc: doc["modules"][0]["stability"],
    ),
    StabilityRule(
        "globals",
        lambda _name, doc: "globals" in doc,
        lambda doc: doc["globals"][0]["stability"],
    ),
)


def _normalize(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def apply_rule(rule: StabilityRule, doc: Mapping[str, Any]) -> int:
    """Run one rule's extractor.

    Raises:
        TransformError: ``unrecognized_schema`` when the nested shape does
            not match or holds no usable stability value.
    """
    try:
        raw = rule.extract(doc)
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise TransformError(
            f"{rule.name}: {type(e).__name__}: {e}", kind="unrecognized_schema"
        ) from e
    value = _normalize(raw)
    if value is None:
        raise TransformError(
            f"{rule.name}: unusable stability value {raw!r}",
            kind="unrecognized_schema",
        )
    return value


def resolve_stability(name: str, doc: Mapping[str, Any]) -> Stability:
    """Resolve a module's stability, falling back to ``"unknown"``."""
    for rule in RULES:
        if not rule.applies(name, doc):
            continue
        try:
            return apply_rule(rule, doc)
        except TransformError as e:
            logger.debug("Stability for %s is unknown (%s)", name, e)
            return UNKNOWN
    return UNKNOWN


def module_name(doc: Mapping[str, Any], address: str | None = None) -> str | None:
    """Derive the module name from ``source``, else from the address."""
    source = doc.get("source")
    if isinstance(source, str):
        match = _NAME_RE.search(source)
        if match:
            return match.group(1)
    if address:
        stem = PurePosixPath(urlparse(address).path or address).stem
        if stem:
            return stem
    return None


def decode(
    content: str | bytes | Mapping[str, Any], *, address: str | None = None
) -> Mapping[str, Any]:
    """Decode fetched content into a JSON object."""
    if isinstance(content, Mapping):
        return content
    try:
        doc = json.loads(content)
    except (ValueError, TypeError) as e:
        raise TransformError(
            f"Invalid JSON from {address or 'payload'}: {e}",
            kind="malformed_payload",
            address=address,
        ) from e
    if not isinstance(doc, dict):
        raise TransformError(
            f"Expected a JSON object from {address or 'payload'}, "
            f"got {type(doc).__name__}",
            kind="malformed_payload",
            address=address,
        )
    return doc


def transform(
    content: str | bytes | Mapping[str, Any], *, address: str | None = None
) -> ModuleRecord:
    """Map one fetched payload to a ``ModuleRecord``.

    A document with neither a ``source`` nor an address is named
    ``"unknown"``.

    Raises:
        TransformError: ``malformed_payload`` when the content is not a JSON
            object. Unrecognized stability shapes never raise; they resolve
            to ``"unknown"``.
    """
    doc = decode(content, address=address)
    name = module_name(doc, address)
    if name is None:
        logger.debug("No module name in payload from %s", address)
        name = UNKNOWN
    return ModuleRecord(name=name, stability=resolve_stability(name, doc))
