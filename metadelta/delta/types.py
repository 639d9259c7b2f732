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
from enum import auto
from typing import Any

from metadelta.utils.enum import StrEnum
from metadelta.vcs.types import ChangeStatus

# Enums


class StrategyKind(StrEnum):
    VERBATIM = auto()
    BUNDLE_COPY = auto()
    COMPOUND_DIFF = auto()


class PackageKind(StrEnum):
    CHANGE = auto()
    DESTRUCTIVE = auto()


# Strategy descriptor


@dataclass(frozen=True, slots=True)
class StrategyDescriptor:
    """
    How files below one directory pattern travel into the packages.

    pattern:
        "/"-separated segment globs relative to the source root,
        e.g. "labels" or "objects/*/recordTypes"
    root_tag:
        expected root tag of compound documents
    always_included:
        sections emitted in every delta regardless of change status
    destructive:
        whether removed entries of this type go to the destructive package
    companion:
        name of a sibling-descriptor convention (see dispatch.COMPANIONS)
    """

    pattern: str
    kind: StrategyKind
    root_tag: str | None = None
    always_included: frozenset[str] = frozenset()
    destructive: bool = False
    companion: str | None = None

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(s for s in self.pattern.strip("/").split("/") if s)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "kind": self.kind.value,
            "root_tag": self.root_tag,
            "always_included": sorted(self.always_included),
            "destructive": self.destructive,
            "companion": self.companion,
        }


VERBATIM_FALLBACK = StrategyDescriptor(pattern="", kind=StrategyKind.VERBATIM)


# Outputs


@dataclass(frozen=True, slots=True)
class PackageWrite:
    package: PackageKind
    path: str  # repository-relative
    content: bytes

    def to_dict(self) -> dict[str, Any]:
        return {"package": self.package.value, "path": self.path, "bytes": len(self.content)}


@dataclass(frozen=True, slots=True)
class FileOutcome:
    """
    Result of materializing one changed path.

    status is the path's own role: a rename produces a DELETED outcome for
    the old path and a RENAMED outcome for the new one.
    """

    path: str
    status: ChangeStatus
    strategy: StrategyKind | None = None
    writes: tuple[PackageWrite, ...] = ()
    changed_entries: int | None = None
    removed_entries: int | None = None
    renamed_from: str | None = None
    note: str | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "strategy": None if self.strategy is None else self.strategy.value,
            "writes": [w.to_dict() for w in self.writes],
            "changed_entries": self.changed_entries,
            "removed_entries": self.removed_entries,
            "renamed_from": self.renamed_from,
            "note": self.note,
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass(frozen=True, slots=True)
class DeltaReport:
    from_ref: str
    to_ref: str | None
    package_dir: str
    destructive_dir: str | None = None
    from_commit: str | None = None
    outcomes: tuple[FileOutcome, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> tuple[FileOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def files_written(self) -> int:
        return len({(w.package, w.path) for o in self.outcomes for w in o.writes})

    def count_by_status(self) -> dict[str, int]:
        out: dict[str, int] = {}
        for o in self.outcomes:
            out[o.status.value] = out.get(o.status.value, 0) + 1
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_ref": self.from_ref,
            "to_ref": self.to_ref,
            "from_commit": self.from_commit,
            "package_dir": self.package_dir,
            "destructive_dir": self.destructive_dir,
            "summary": {
                "paths": len(self.outcomes),
                "failed": len(self.failed),
                "files_written": self.files_written,
                "by_status": self.count_by_status(),
            },
            "outcomes": [o.to_dict() for o in self.outcomes],
            "metadata": dict(self.metadata),
        }
