# SPDX-License-Identifier: AGPL-3.0-only
#
# Copyright (c) 2026 Metadelta Contributors
#
# This file is part of Metadelta.
#
# Metadelta is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 only.
#
# Metadelta is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
# See the GNU Affero General Public License for more details.

"""
XML <-> Document codec.

Element mapping:
  - element with child elements   -> dict of child tag -> value
                                      (repeated tags collapse into a list)
  - element with text only         -> str, whitespace kept (empty element -> "")
  - element with attributes        -> dict with "@name" keys and "#text"

Children of the root element always become lists, so every section of a
parsed Document is a list of entries.
"""

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from metadelta.document.errors import ParseError
from metadelta.document.types import XML_DECLARATION, Document, as_entry_list

INDENT = "    "
TEXT_KEY = "#text"
ATTR_PREFIX = "@"

# Attribute namespaces we know how to round-trip with a stable prefix
KNOWN_NAMESPACES = {
    "http://www.w3.org/2001/XMLSchema-instance": "xsi",
}

for _uri, _prefix in KNOWN_NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)


def _split_tag(tag: str) -> tuple[str | None, str]:
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        return uri, local
    return None, tag


def _attr_name(name: str) -> str:
    uri, local = _split_tag(name)
    if uri is None:
        return local
    prefix = KNOWN_NAMESPACES.get(uri)
    if prefix is None:
        raise ParseError(f"Unsupported attribute namespace: {uri}", code="unsupported_namespace")
    return f"{prefix}:{local}"


def _qualified_attr(name: str) -> str:
    prefix, sep, local = name.partition(":")
    if not sep:
        return name
    for uri, known in KNOWN_NAMESPACES.items():
        if known == prefix:
            return f"{{{uri}}}{local}"
    return name


def _element_value(el: ET.Element) -> Any:
    children = list(el)
    attrs = {ATTR_PREFIX + _attr_name(k): v for k, v in el.attrib.items()}
    if not children:
        text = el.text or ""
        if attrs:
            out: dict[str, Any] = dict(attrs)
            if text:
                out[TEXT_KEY] = text
            return out
        return text

    value: dict[str, Any] = dict(attrs)
    for child in children:
        _, tag = _split_tag(child.tag)
        child_value = _element_value(child)
        if tag in value:
            existing = value[tag]
            if isinstance(existing, list):
                existing.append(child_value)
            else:
                value[tag] = [existing, child_value]
        else:
            value[tag] = child_value
    return value


def parse(raw: str | bytes) -> Document:
    """
    Parse document content into a Document.

    Raises:
        ParseError: content is not well-formed XML
    """
    data = raw.encode("utf-8") if isinstance(raw, str) else raw
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ParseError(f"Malformed document: {e}", details={"position": list(e.position)}) from e

    namespace, root_tag = _split_tag(root.tag)

    sections: dict[str, list[Any]] = {}
    for child in root:
        _, tag = _split_tag(child.tag)
        sections.setdefault(tag, []).append(_element_value(child))

    return Document(root_tag=root_tag, sections=sections, namespace=namespace)


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, (list, tuple)):
        for item in value:
            _append(parent, tag, item)
        return

    child = ET.SubElement(parent, tag)

    if isinstance(value, Mapping):
        for k, v in value.items():
            if k == TEXT_KEY:
                child.text = _scalar_text(v)
            elif k.startswith(ATTR_PREFIX):
                child.set(_qualified_attr(k[len(ATTR_PREFIX) :]), _scalar_text(v))
            else:
                _append(child, k, v)
        return

    if value is not None and value != "":
        child.text = _scalar_text(value)


def to_element(document: Document) -> ET.Element:
    root = ET.Element(document.root_tag)
    if document.namespace:
        root.set("xmlns", document.namespace)
    for section, entries in document.sections.items():
        for entry in as_entry_list(entries):
            _append(root, section, entry)
    return root


def serialize(document: Document) -> str:
    """
    Serialize a Document with the canonical declaration line and indentation.

    Identical documents always serialize to identical text.
    """
    root = to_element(document)
    ET.indent(root, space=INDENT)
    body = ET.tostring(root, encoding="unicode")
    return f"{XML_DECLARATION}\n{body}\n"
