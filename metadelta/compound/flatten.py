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

from typing import Any

from metadelta.document.errors import IdentityCollisionError
from metadelta.document.types import Document, FlatEntry, IdentityKey, as_entry_list
from metadelta.identity.tables import CompositeType
from metadelta.utils.jsonutil import dumps_deterministic


def entry_body(value: Any) -> str:
    # Canonical content signature for change detection.
    return dumps_deterministic(value)


class DefaultEntryFlattener:
    """
    Document -> FlatEntry records, section-then-entry order as encountered.

    Pure transform. Identity keys must be unique per section.
    """

    def flatten(self, document: Document, ctype: CompositeType) -> tuple[FlatEntry, ...]:
        seen: set[tuple[str, IdentityKey]] = set()
        out: list[FlatEntry] = []

        for section, raw in document.sections.items():
            rule = ctype.rule_for(section)
            for value in as_entry_list(raw):
                body = entry_body(value)
                key = rule.identify(value, section=section, body=body)
                if (section, key) in seen:
                    raise IdentityCollisionError(section, str(key))
                seen.add((section, key))
                out.append(FlatEntry(section=section, key=key, body=body, value=value))

        return tuple(out)
