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

from collections.abc import Iterable, Sequence

from metadelta.document.types import DiffResult, FlatEntry


class DefaultSetDiffer:
    """
    Pure set comparison of two flattened revisions. Type-agnostic.

    changed: records of `after` that are new, differ from `before`, or belong
             to an always-included section
    forced:  keys of changed records that are unchanged and present only
             because their section is always included
    removed: records of `before` whose key is gone from `after`, except in
             always-included sections
    """

    def diff(
        self,
        before: Sequence[FlatEntry],
        after: Sequence[FlatEntry],
        *,
        always_included: Iterable[str] = (),
    ) -> DiffResult:
        required = frozenset(always_included)

        before_bodies = {r.ident: r.body for r in before}
        after_keys = {r.ident for r in after}

        modified = {r.ident for r in after if before_bodies.get(r.ident) != r.body}
        changed = tuple(r for r in after if r.section in required or r.ident in modified)
        forced = frozenset(r.ident for r in changed if r.ident not in modified)
        removed = tuple(r for r in before if r.ident not in after_keys and r.section not in required)

        return DiffResult(changed=changed, removed=removed, always_included=required, forced=forced)
