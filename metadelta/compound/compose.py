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

from collections.abc import Iterable

from metadelta.document.codec import serialize
from metadelta.document.errors import IdentityCollisionError
from metadelta.document.types import METADATA_NAMESPACE, Document, FlatEntry, IdentityKey
from metadelta.identity.tables import CompositeType


class CanonicalComposer:
    """
    Rebuild a canonical Document from FlatEntry records.

    Output depends only on the set of records, never on their input order:
      - sections: leading sections of the type first, then by name
      - entries: sorted by the section comparator (constant sections as-is)
    """

    def compose(
        self,
        records: Iterable[FlatEntry],
        ctype: CompositeType,
        *,
        namespace: str | None = METADATA_NAMESPACE,
    ) -> Document:
        groups: dict[str, list[FlatEntry]] = {}
        seen: set[tuple[str, IdentityKey]] = set()
        for r in records:
            if r.ident in seen:
                raise IdentityCollisionError(r.section, str(r.key))
            seen.add(r.ident)
            groups.setdefault(r.section, []).append(r)

        sections: dict[str, list] = {}
        for section in ctype.section_order(groups):
            rule = ctype.rule_for(section)
            entries = groups[section]
            if not rule.is_constant:
                sort_key = rule.sort_key()
                entries = sorted(entries, key=lambda r: sort_key(r.key))
            sections[section] = [r.value for r in entries]

        return Document(root_tag=ctype.root_tag, sections=sections, namespace=namespace)

    def render(
        self,
        records: Iterable[FlatEntry],
        ctype: CompositeType,
        *,
        namespace: str | None = METADATA_NAMESPACE,
    ) -> str:
        return serialize(self.compose(records, ctype, namespace=namespace))
