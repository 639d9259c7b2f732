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

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Salesforce metadata API namespace, used when a document does not declare one
METADATA_NAMESPACE = "http://soap.sforce.com/2006/04/metadata"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def as_entry_list(value: Any) -> list[Any]:
    """A section holding a single non-list entry is a one-element list."""
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


# Document


@dataclass(frozen=True, slots=True)
class Document:
    """
    A parsed composite document.

    sections maps a section (child tag) name to its entries, in document
    order. An entry is either a mapping of field -> value (values may be
    scalars, nested mappings or lists of those) or a bare scalar for
    text-only sections such as <custom>true</custom>.
    """

    root_tag: str
    sections: Mapping[str, Any] = field(default_factory=dict)
    namespace: str | None = METADATA_NAMESPACE

    def entries(self, section: str) -> list[Any]:
        if section not in self.sections:
            return []
        return as_entry_list(self.sections[section])

    def section_names(self) -> tuple[str, ...]:
        return tuple(self.sections.keys())

    @classmethod
    def empty(cls, root_tag: str, namespace: str | None = METADATA_NAMESPACE) -> "Document":
        return cls(root_tag=root_tag, sections={}, namespace=namespace)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_tag": self.root_tag,
            "namespace": self.namespace,
            "sections": {k: as_entry_list(v) for k, v in self.sections.items()},
        }


# Identity


@dataclass(frozen=True, slots=True)
class IdentityKey:
    """
    Natural key of an entry inside its section.

    parts is the typed value used for hashing and equality, so separator
    characters inside field values cannot make two keys collide. The string
    form joins the parts with "." and is used for ordering and file names.
    """

    parts: tuple[str, ...]

    @classmethod
    def of(cls, *parts: str) -> "IdentityKey":
        return cls(parts=tuple(parts))

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True, slots=True)
class FlatEntry:
    """
    One entry lifted out of its document.

    body is the canonical serialized form used for change detection;
    value is the entry payload used to rebuild documents.
    """

    section: str
    key: IdentityKey
    body: str
    value: Any

    @property
    def ident(self) -> tuple[str, IdentityKey]:
        return (self.section, self.key)

    def to_dict(self) -> dict[str, Any]:
        return {"section": self.section, "key": str(self.key)}


# Diff


@dataclass(frozen=True, slots=True)
class DiffResult:
    changed: tuple[FlatEntry, ...] = ()
    removed: tuple[FlatEntry, ...] = ()
    always_included: frozenset[str] = frozenset()
    # changed records present only because their section is always included
    forced: frozenset[tuple[str, IdentityKey]] = frozenset()

    @property
    def has_changes(self) -> bool:
        """True when some changed record is new or differs, whatever its section."""
        return any(r.ident not in self.forced for r in self.changed)

    @property
    def is_empty(self) -> bool:
        return not self.has_changes and not self.removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "changed": [r.to_dict() for r in self.changed],
            "removed": [r.to_dict() for r in self.removed],
        }
