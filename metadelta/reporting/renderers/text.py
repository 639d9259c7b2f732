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

from typing import Literal

from metadelta.delta.types import DeltaReport, FileOutcome
from metadelta.vcs.types import ChangeStatus

Verbosity = Literal["quiet", "normal", "verbose"]

_STATUS_LABELS = {
    ChangeStatus.MODIFIED: "MODIFIED",
    ChangeStatus.ADDED: "ADDED",
    ChangeStatus.DELETED: "DELETED",
    ChangeStatus.RENAMED: "RENAMED TO",
    ChangeStatus.COPIED: "ADDED",
}


class TextDeltaRenderer:
    """
    Human-readable CLI output. Pure rendering: does not sort or mutate.

    Verbosity levels:
    - quiet: one-line summary only
    - normal: summary + one line per path
    - verbose: everything (header, written files, notes)
    """

    def __init__(self, verbosity: Verbosity = "normal"):
        self.verbosity = verbosity

    def render(self, report: DeltaReport) -> str:
        if self.verbosity == "quiet":
            return self._summary(report) + "\n"

        lines: list[str] = []
        if self.verbosity == "verbose":
            lines.extend(self._render_header(report))
            lines.append("")

        lines.append(self._summary(report))
        if report.outcomes:
            lines.append("")
        for o in report.outcomes:
            lines.extend(self._render_outcome(o, verbose=self.verbosity == "verbose"))

        return "\n".join(lines).rstrip() + "\n"

    def _summary(self, report: DeltaReport) -> str:
        failed = len(report.failed)
        if not report.outcomes:
            return "✓ No changes"

        by_status = ", ".join(f"{v} {k}" for k, v in sorted(report.count_by_status().items()))
        text = f"{len(report.outcomes)} paths ({by_status}), {report.files_written} files written"
        if failed:
            return f"✗ {text}, {failed} failed"
        return f"✓ {text}"

    def _render_header(self, report: DeltaReport) -> list[str]:
        lines = [f"from: {report.from_ref}"]
        if report.from_commit:
            lines.append(f"from_commit: {report.from_commit}")
        lines.append(f"to: {report.to_ref or report.metadata.get('new_revision', 'working tree')}")
        lines.append(f"package: {report.package_dir}")
        if report.destructive_dir:
            lines.append(f"destructive: {report.destructive_dir}")
        source_root = report.metadata.get("source_root")
        if source_root:
            lines.append(f"source_root: {source_root}")
        return lines

    def _render_outcome(self, o: FileOutcome, *, verbose: bool) -> list[str]:
        out: list[str] = []

        mark = "✗" if not o.ok else " "
        header = f"{mark} {_STATUS_LABELS[o.status]} {o.path}"
        if o.strategy is not None:
            header += f" [{o.strategy.value}]"
        if o.changed_entries is not None:
            header += f" +{o.changed_entries} -{o.removed_entries or 0} entries"
        out.append(header)

        if o.renamed_from:
            out.append(f"    from: {o.renamed_from}")

        if not o.ok:
            out.append(f"    {o.error_type}: {o.error}")

        if verbose:
            if o.note:
                out.append(f"    note: {o.note}")
            for w in o.writes:
                out.append(f"    -> {w.package.value}: {w.path}")

        return out
