"""Conversion of XML documents into plain attributed dict trees."""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any
from xml.etree import ElementTree

from kaken.utils import is_number

ATTR_PREFIX = "@"
TEXT_KEY = "#text"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

INTEGER_PATTERN = re.compile(r"-?(?:0|[1-9]\d*)")
DECIMAL_PATTERN = re.compile(r"-?(?:0|[1-9]\d*)\.\d+")


def parse_xml(content: str, *, force_list: Collection[str] = ()) -> dict[str, Any]:
    """Parse ``content`` into ``{root_tag: node}``.

    Elements become dicts, attributes are stored under ``@name`` keys and text
    of an element that also has attributes or children under ``#text``. A leaf
    element without attributes collapses to its (trimmed) text. Repeated
    siblings become lists, and elements named in ``force_list`` are always
    lists, even when they occur once. Integer and decimal element text is
    converted to numbers; attribute values are left as strings.

    Raises ``xml.etree.ElementTree.ParseError`` on malformed input.
    """
    root = ElementTree.fromstring(content)
    forced = frozenset(force_list)
    return {_local_name(root.tag): _convert(root, forced)}


def _convert(element: ElementTree.Element, forced: frozenset[str]) -> Any:
    node: dict[str, Any] = {
        ATTR_PREFIX + _attribute_name(name): value for name, value in element.attrib.items()
    }
    repeated: set[str] = set()
    for child in element:
        name = _local_name(child.tag)
        value = _convert(child, forced)
        if name in forced:
            node.setdefault(name, []).append(value)
        elif name in repeated:
            node[name].append(value)
        elif name in node:
            node[name] = [node[name], value]
            repeated.add(name)
        else:
            node[name] = value

    text = (element.text or "").strip()
    if not node:
        return _scalar(text)
    if text:
        node[TEXT_KEY] = _scalar(text)
    return node


def _scalar(text: str) -> Any:
    try:
        if INTEGER_PATTERN.fullmatch(text):
            return int(text)
        if DECIMAL_PATTERN.fullmatch(text):
            return float(text)
    except ValueError:
        # Integers beyond the interpreter's digit limit stay text.
        pass
    return text


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def _attribute_name(name: str) -> str:
    if name.startswith("{"):
        namespace, _, local = name[1:].partition("}")
        return f"xml:{local}" if namespace == XML_NAMESPACE else local
    return name


def attribute(node: Any, name: str) -> str | None:
    """Return the string attribute ``name`` of a dict node, if present."""
    if not isinstance(node, Mapping):
        return None
    value = node.get(ATTR_PREFIX + name)
    return value if isinstance(value, str) else None


@dataclass(frozen=True, slots=True)
class TextNode:
    """Element text together with whatever attributes the element carried.

    Covers both shapes a leaf can take in the tree: plain text (no
    attributes) and an attributed node with ``#text``.
    """

    text: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def attr(self, name: str) -> str | None:
        return attribute(self.attributes, name)


def text_node(value: Any) -> TextNode | None:
    """Normalize a leaf value into a :class:`TextNode`; ``None`` when it has no text."""
    if isinstance(value, Mapping):
        text = _as_text(value.get(TEXT_KEY))
        if text is None:
            return None
        attributes = {key: item for key, item in value.items() if key.startswith(ATTR_PREFIX)}
        return TextNode(text, attributes)
    text = _as_text(value)
    return TextNode(text) if text is not None else None


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if is_number(value):
        return str(value)
    return None
