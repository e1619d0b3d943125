"""Declarative DOM extraction.

A schema maps output field names to ``Field`` records. ``extract`` evaluates a
schema against a parsed node and never raises for missing markup: an absent
node, an absent attribute or a failing transform yields the field's default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Field:
    """How to read one value out of a node.

    selector: CSS selector relative to the node; None reads the node itself.
    attrs: attributes tried in order; empty reads the element text.
    many: collect every match into a list instead of the first one.
    url: resolve the value against the page URL.
    transform: applied to the raw string (or list) when one was found.
    """

    selector: str | None
    attrs: tuple[str, ...] = ()
    many: bool = False
    url: bool = False
    transform: Callable[[Any], Any] | None = None
    default: Any = ""


Schema = dict[str, Field]


def parse_html(html: str | None) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _read(element: Tag, spec: Field, base_url: str | None) -> str:
    if spec.attrs:
        value = ""
        for attr in spec.attrs:
            raw = element.get(attr)
            if isinstance(raw, list):
                raw = " ".join(raw)
            if raw and raw.strip():
                value = raw.strip()
                break
    else:
        value = element.get_text(" ", strip=True)

    if value and spec.url and base_url:
        value = urljoin(base_url, value)
    return value


def extract_field(node: Tag, spec: Field, base_url: str | None = None) -> Any:
    """Evaluate one field, falling back to its default."""
    if spec.many:
        elements = node.select(spec.selector) if spec.selector else [node]
        raw: Any = [v for v in (_read(el, spec, base_url) for el in elements) if v]
        if not raw:
            return _default(spec)
    else:
        element = node.select_one(spec.selector) if spec.selector else node
        if element is None:
            return _default(spec)
        raw = _read(element, spec, base_url)
        if not raw:
            return _default(spec)

    if spec.transform is None:
        return raw
    try:
        value = spec.transform(raw)
    except (ValueError, TypeError, KeyError, IndexError) as e:
        logger.debug(f"Transform failed for {spec.selector!r}: {e}")
        return _default(spec)
    return _default(spec) if value is None else value


def _default(spec: Field) -> Any:
    # Fresh containers per call; schemas are shared module constants.
    if isinstance(spec.default, (list, dict)):
        return type(spec.default)(spec.default)
    return spec.default


def extract(node: Tag, schema: Schema, base_url: str | None = None) -> dict[str, Any]:
    return {name: extract_field(node, spec, base_url) for name, spec in schema.items()}


def extract_all(
    node: Tag, selector: str, schema: Schema, base_url: str | None = None
) -> list[dict[str, Any]]:
    """Apply ``schema`` to every element matching ``selector``."""
    return [extract(element, schema, base_url) for element in node.select(selector)]
