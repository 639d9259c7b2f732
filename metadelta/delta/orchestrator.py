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

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from metadelta.compound.compose import CanonicalComposer
from metadelta.compound.diff import DefaultSetDiffer
from metadelta.compound.flatten import DefaultEntryFlattener
from metadelta.core.config import DeltaConfig
from metadelta.delta.dispatch import META_SUFFIX, Resolution, StrategyTable
from metadelta.delta.types import DeltaReport, FileOutcome, PackageKind, PackageWrite, StrategyKind
from metadelta.document.codec import parse
from metadelta.document.errors import DocumentError, ParseError
from metadelta.document.types import DiffResult, Document
from metadelta.identity.tables import DEFAULT_REGISTRY, TypeRegistry
from metadelta.vcs.git import GitVCSProvider, VCSLookupError
from metadelta.vcs.source import GitRevisionSource, RevisionSource, WorkingTreeSource
from metadelta.vcs.types import ChangeStatus, StatusEntry

logger = logging.getLogger(__name__)

# Errors that abort one path, never the whole run
PER_FILE_ERRORS = (DocumentError, VCSLookupError, OSError)

# Statuses whose path has no previous version to diff against
_NO_PREVIOUS = (ChangeStatus.ADDED, ChangeStatus.RENAMED, ChangeStatus.COPIED)


@dataclass(frozen=True, slots=True)
class WorkItem:
    path: str
    status: ChangeStatus
    renamed_from: str | None = None


@dataclass(frozen=True, slots=True)
class CompoundDelta:
    """Changed/removed entries of one compound file, already rendered."""

    diff: DiffResult
    change: str | None = None
    destructive: str | None = None


class DeltaOrchestrator:
    """
    Turns a version-control status list into a change package and an
    optional destructive package.

    Per path: classify against the strategy table, compute the package
    writes (pure with respect to the output tree), then apply all writes
    in status order.
    """

    def __init__(
        self,
        *,
        vcs: GitVCSProvider | None = None,
        table: StrategyTable | None = None,
        registry: TypeRegistry = DEFAULT_REGISTRY,
        flattener: DefaultEntryFlattener | None = None,
        differ: DefaultSetDiffer | None = None,
        composer: CanonicalComposer | None = None,
    ) -> None:
        self.vcs = vcs or GitVCSProvider()
        self.table = table or StrategyTable()
        self.registry = registry
        self.flattener = flattener or DefaultEntryFlattener()
        self.differ = differ or DefaultSetDiffer()
        self.composer = composer or CanonicalComposer()

    # ----------------------------
    # Run
    # ----------------------------

    def run(self, cfg: DeltaConfig) -> DeltaReport:
        """
        Generate the delta packages for cfg.from_ref..cfg.to_ref.

        cfg.source_root, when set, applies to this run only.

        Raises:
            VCSLookupError: the status list itself cannot be produced
        """
        if cfg.source_root is not None:
            table = self.table.extended((), source_root=cfg.source_root)
            if table.source_root != self.table.source_root:
                return self.with_table(table).run(replace(cfg, source_root=None))

        entries = self.vcs.status_list(cfg.repo_root, cfg.from_ref, cfg.to_ref)
        items = self.plan(entries)
        logger.info("%d of %d changed paths under %s", len(items), len(entries), self.table.source_root or ".")

        old: RevisionSource = GitRevisionSource(cfg.repo_root, cfg.from_ref, self.vcs)
        new: RevisionSource = (
            GitRevisionSource(cfg.repo_root, cfg.to_ref, self.vcs) if cfg.to_ref else WorkingTreeSource(cfg.repo_root)
        )

        outcomes = self.materialize_all(items, old, new, destructive=cfg.destructive_dir is not None, jobs=cfg.jobs)
        outcomes = self.apply(outcomes, package_dir=cfg.package_dir, destructive_dir=cfg.destructive_dir)

        return DeltaReport(
            from_ref=cfg.from_ref,
            to_ref=cfg.to_ref,
            package_dir=str(cfg.package_dir),
            destructive_dir=None if cfg.destructive_dir is None else str(cfg.destructive_dir),
            from_commit=self.vcs.resolve_ref(cfg.repo_root, cfg.from_ref),
            outcomes=tuple(outcomes),
            metadata={"source_root": self.table.source_root, "new_revision": new.label},
        )

    def with_table(self, table: StrategyTable) -> "DeltaOrchestrator":
        return DeltaOrchestrator(
            vcs=self.vcs,
            table=table,
            registry=self.registry,
            flattener=self.flattener,
            differ=self.differ,
            composer=self.composer,
        )

    def plan(self, entries: Iterable[StatusEntry]) -> list[WorkItem]:
        """
        Expand status entries into per-path work, keeping only paths under the source root.

        A rename is a deletion of the old path plus an addition of the new one.
        """
        items: list[WorkItem] = []
        for e in entries:
            if e.status == ChangeStatus.RENAMED:
                if self.table.in_scope(e.path):
                    items.append(WorkItem(path=e.path, status=ChangeStatus.DELETED))
                if self.table.in_scope(e.target):
                    items.append(WorkItem(path=e.target, status=ChangeStatus.RENAMED, renamed_from=e.path))
                continue

            path = e.target
            if self.table.in_scope(path):
                items.append(WorkItem(path=path, status=e.status))
        return items

    # ----------------------------
    # Materialize (no output writes)
    # ----------------------------

    def materialize_all(
        self,
        items: Sequence[WorkItem],
        old: RevisionSource,
        new: RevisionSource,
        *,
        destructive: bool,
        jobs: int = 1,
    ) -> list[FileOutcome]:
        def work(item: WorkItem) -> FileOutcome:
            return self.materialize(item, old, new, destructive=destructive)

        if jobs > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                return list(pool.map(work, items))
        return [work(item) for item in items]

    def materialize(self, item: WorkItem, old: RevisionSource, new: RevisionSource, *, destructive: bool) -> FileOutcome:
        if item.status == ChangeStatus.DELETED:
            return self._materialize_deletion(item, old, destructive=destructive)

        resolution = self.table.resolve(item.path)
        outcome = FileOutcome(
            path=item.path,
            status=item.status,
            strategy=resolution.kind,
            renamed_from=item.renamed_from,
        )
        try:
            if resolution.kind == StrategyKind.COMPOUND_DIFF:
                outcome = self._materialize_compound(outcome, resolution, old, new, destructive=destructive)
            elif resolution.kind == StrategyKind.BUNDLE_COPY:
                outcome = replace(outcome, writes=self._bundle_writes(resolution, new))
            else:
                outcome = replace(outcome, writes=(self._copy(new, item.path),))

            extra: list[PackageWrite] = []
            companion = resolution.companion_path()
            if companion is not None and new.exists(companion):
                extra.append(self._copy(new, companion))

            meta = item.path + META_SUFFIX
            if new.exists(meta):
                extra.append(self._copy(new, meta))

            planned = {(w.package, w.path): w for w in outcome.writes + tuple(extra)}
            outcome = replace(outcome, writes=tuple(planned.values()))
        except PER_FILE_ERRORS as e:
            return self._failed(outcome, e)

        logger.info("%s %s (%s, %d files)", item.path, item.status.value, resolution.kind.value, len(outcome.writes))
        return outcome

    def _materialize_deletion(self, item: WorkItem, old: RevisionSource, *, destructive: bool) -> FileOutcome:
        outcome = FileOutcome(path=item.path, status=ChangeStatus.DELETED)
        if not destructive:
            return replace(outcome, note="no destructive directory requested")
        try:
            content = old.read(item.path)
        except PER_FILE_ERRORS as e:
            return self._failed(outcome, e)
        logger.info("%s deleted", item.path)
        return replace(outcome, writes=(PackageWrite(PackageKind.DESTRUCTIVE, item.path, content),))

    def _materialize_compound(
        self,
        outcome: FileOutcome,
        resolution: Resolution,
        old: RevisionSource,
        new: RevisionSource,
        *,
        destructive: bool,
    ) -> FileOutcome:
        path = outcome.path
        descriptor = resolution.descriptor
        try:
            new_doc = parse(new.read(path))
            if outcome.status in _NO_PREVIOUS:
                old_doc = Document.empty(new_doc.root_tag, new_doc.namespace)
            else:
                old_doc = parse(old.read(path))

            delta = self.diff_documents(
                old_doc,
                new_doc,
                always_included=descriptor.always_included,
                root_tag=descriptor.root_tag,
                destructive=destructive and descriptor.destructive,
            )
        except DocumentError as e:
            raise e.with_path(path) from None

        writes: list[PackageWrite] = []
        if delta.change is not None:
            writes.append(PackageWrite(PackageKind.CHANGE, path, delta.change.encode("utf-8")))
        if delta.destructive is not None:
            writes.append(PackageWrite(PackageKind.DESTRUCTIVE, path, delta.destructive.encode("utf-8")))

        return replace(
            outcome,
            writes=tuple(writes),
            changed_entries=len(delta.diff.changed),
            removed_entries=len(delta.diff.removed),
            note=None if delta.diff.has_changes else "no entry changes",
        )

    def diff_documents(
        self,
        old_doc: Document,
        new_doc: Document,
        *,
        always_included: Iterable[str] = (),
        root_tag: str | None = None,
        destructive: bool = True,
    ) -> CompoundDelta:
        """
        Compound diff of two revisions of one document.

        change is rendered when anything outside the always-included sections
        changed; destructive when entries were removed and destructive is set.
        """
        expected = root_tag or new_doc.root_tag
        for doc in (old_doc, new_doc):
            if doc.root_tag != expected:
                raise ParseError(
                    f"Expected root tag {expected!r}, found {doc.root_tag!r}",
                    code="root_tag_mismatch",
                )

        ctype = self.registry.get(expected)
        diff = self.differ.diff(
            self.flattener.flatten(old_doc, ctype),
            self.flattener.flatten(new_doc, ctype),
            always_included=always_included,
        )

        change = None
        if diff.has_changes:
            change = self.composer.render(diff.changed, ctype, namespace=new_doc.namespace)

        removed = None
        if destructive and diff.removed:
            removed = self.composer.render(diff.removed, ctype, namespace=old_doc.namespace or new_doc.namespace)

        return CompoundDelta(diff=diff, change=change, destructive=removed)

    def _bundle_writes(self, resolution: Resolution, new: RevisionSource) -> tuple[PackageWrite, ...]:
        if resolution.bundle_dir is None:
            return (self._copy(new, resolution.path),)
        return tuple(self._copy(new, p) for p in new.list_files(resolution.bundle_dir))

    def _copy(self, source: RevisionSource, path: str) -> PackageWrite:
        return PackageWrite(PackageKind.CHANGE, path, source.read(path))

    def _failed(self, outcome: FileOutcome, error: Exception) -> FileOutcome:
        logger.error("%s: %s", outcome.path, error)
        return replace(outcome, writes=(), error=str(error), error_type=type(error).__name__)

    # ----------------------------
    # Apply
    # ----------------------------

    def apply(
        self,
        outcomes: Iterable[FileOutcome],
        *,
        package_dir: Path,
        destructive_dir: Path | None,
    ) -> list[FileOutcome]:
        """
        Write every outcome's files, in order. A failed write fails that outcome only.
        """
        roots = {PackageKind.CHANGE: Path(package_dir)}
        if destructive_dir is not None:
            roots[PackageKind.DESTRUCTIVE] = Path(destructive_dir)

        applied: list[FileOutcome] = []
        for outcome in outcomes:
            try:
                for w in outcome.writes:
                    target = roots[w.package] / Path(*w.path.split("/"))
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(w.content)
            except OSError as e:
                outcome = self._failed(outcome, e)
            applied.append(outcome)
        return applied
