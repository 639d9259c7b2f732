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
Type dispatch: which strategy handles a changed path.

The table is an ordered list of StrategyDescriptor. A descriptor matches a
path when its pattern segments match the leading directory segments of the
path (relative to the source root). The most specific match wins: most
segments, then most literal segments, then the earliest entry.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from posixpath import basename, dirname

from metadelta.delta.types import VERBATIM_FALLBACK, StrategyDescriptor, StrategyKind

DEFAULT_SOURCE_ROOT = "force-app/main/default"
META_SUFFIX = "-meta.xml"

_WILDCARDS = set("*?[")


def _compound(
    pattern: str,
    root_tag: str,
    *,
    destructive: bool,
    always_included: Iterable[str] = (),
) -> StrategyDescriptor:
    return StrategyDescriptor(
        pattern=pattern,
        kind=StrategyKind.COMPOUND_DIFF,
        root_tag=root_tag,
        always_included=frozenset(always_included),
        destructive=destructive,
    )


DEFAULT_STRATEGIES: tuple[StrategyDescriptor, ...] = (
    StrategyDescriptor(pattern="aura", kind=StrategyKind.BUNDLE_COPY),
    StrategyDescriptor(pattern="lwc", kind=StrategyKind.BUNDLE_COPY),
    StrategyDescriptor(pattern="staticresources", kind=StrategyKind.BUNDLE_COPY, companion="static_resource"),
    StrategyDescriptor(pattern="objectTranslations", kind=StrategyKind.VERBATIM, companion="object_translation"),
    StrategyDescriptor(pattern="objects", kind=StrategyKind.VERBATIM),
    _compound(
        "objects/*/recordTypes",
        "RecordType",
        destructive=False,
        always_included=("fullName", "active", "label"),
    ),
    _compound("labels", "CustomLabels", destructive=True),
    _compound("profiles", "Profile", destructive=False),
    _compound("permissionsets", "PermissionSet", destructive=False),
    _compound("sharingRules", "SharingRules", destructive=True),
    _compound("assignmentRules", "AssignmentRules", destructive=True),
    _compound("autoResponseRules", "AutoResponseRules", destructive=True),
    _compound("matchingRules", "MatchingRules", destructive=True),
    _compound("workflows", "Workflow", destructive=True),
    _compound("translations", "Translations", destructive=False),
)


# Companions


def _object_translation_descriptor(path: str, match_dir: str, bundle_dir: str | None) -> str | None:
    folder = dirname(path)
    candidate = f"{folder}/{basename(folder)}.objectTranslation{META_SUFFIX}"
    return None if candidate == path else candidate


def _static_resource_descriptor(path: str, match_dir: str, bundle_dir: str | None) -> str | None:
    if bundle_dir is not None:
        name = basename(bundle_dir)
    else:
        if path.endswith(".resource" + META_SUFFIX):
            return None
        file_name = basename(path)
        name = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    candidate = f"{match_dir}/{name}.resource{META_SUFFIX}"
    return None if candidate == path else candidate


Companion = Callable[[str, str, str | None], str | None]

COMPANIONS: dict[str, Companion] = {
    "object_translation": _object_translation_descriptor,
    "static_resource": _static_resource_descriptor,
}


# Resolution


@dataclass(frozen=True, slots=True)
class Resolution:
    """
    A path classified against the table.

    match_dir:  repository-relative directory matched by the pattern
    bundle_dir: for bundle copies, the bundle folder (None when the file sits
                directly in match_dir and is its own bundle)
    """

    path: str
    descriptor: StrategyDescriptor
    match_dir: str | None = None
    bundle_dir: str | None = None

    @property
    def kind(self) -> StrategyKind:
        return self.descriptor.kind

    def companion_path(self) -> str | None:
        name = self.descriptor.companion
        if not name or self.match_dir is None:
            return None
        return COMPANIONS[name](self.path, self.match_dir, self.bundle_dir)


def _specificity(descriptor: StrategyDescriptor) -> tuple[int, int]:
    segments = descriptor.segments
    literal = sum(1 for s in segments if not (_WILDCARDS & set(s)))
    return (len(segments), literal)


class StrategyTable:
    def __init__(
        self,
        descriptors: Iterable[StrategyDescriptor] = DEFAULT_STRATEGIES,
        *,
        source_root: str = DEFAULT_SOURCE_ROOT,
    ) -> None:
        self.descriptors: tuple[StrategyDescriptor, ...] = tuple(descriptors)
        root = source_root.strip("/")
        self.source_root = "" if root == "." else root  # "": the whole repository
        for d in self.descriptors:
            if d.companion is not None and d.companion not in COMPANIONS:
                raise ValueError(f"Unknown companion convention: {d.companion!r}")

    def extended(self, extra: Iterable[StrategyDescriptor], *, source_root: str | None = None) -> "StrategyTable":
        """Layer extra descriptors on top; a descriptor with the same pattern replaces the built-in one."""
        extra = tuple(extra)
        replaced = {d.segments for d in extra}
        kept = tuple(d for d in self.descriptors if d.segments not in replaced)
        return StrategyTable(kept + extra, source_root=source_root or self.source_root)

    def relative(self, path: str) -> str | None:
        """Path relative to the source root, or None when outside it."""
        if not self.source_root:
            return path
        prefix = self.source_root + "/"
        if not path.startswith(prefix):
            return None
        return path[len(prefix) :]

    def in_scope(self, path: str) -> bool:
        return self.relative(path) is not None

    def match(self, path: str) -> StrategyDescriptor | None:
        rel = self.relative(path)
        if rel is None:
            return None
        dir_parts = rel.split("/")[:-1]

        best: StrategyDescriptor | None = None
        best_score: tuple[int, int] | None = None
        for d in self.descriptors:
            segments = d.segments
            if not segments or len(segments) > len(dir_parts):
                continue
            if not all(fnmatchcase(part, seg) for part, seg in zip(dir_parts, segments)):
                continue
            score = _specificity(d)
            if best_score is None or score > best_score:
                best, best_score = d, score
        return best

    def resolve(self, path: str) -> Resolution:
        """Classify a repository-relative path. Unmatched paths fall back to a verbatim copy."""
        descriptor = self.match(path)
        if descriptor is None:
            return Resolution(path=path, descriptor=VERBATIM_FALLBACK)

        rel_parts = self.relative(path).split("/")  # type: ignore[union-attr]
        depth = len(descriptor.segments)
        root_parts = [self.source_root] if self.source_root else []
        match_dir = "/".join(root_parts + rel_parts[:depth])

        bundle_dir = None
        if descriptor.kind == StrategyKind.BUNDLE_COPY and len(rel_parts) - 1 > depth:
            bundle_dir = "/".join(root_parts + rel_parts[: depth + 1])

        return Resolution(path=path, descriptor=descriptor, match_dir=match_dir, bundle_dir=bundle_dir)
