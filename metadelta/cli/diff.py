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

import sys
from pathlib import Path

from metadelta.cli._io import ensure_file
from metadelta.cli.exitcodes import EXIT_FILE_ERRORS, EXIT_OK
from metadelta.delta.dispatch import DEFAULT_STRATEGIES
from metadelta.delta.orchestrator import DeltaOrchestrator
from metadelta.document.codec import parse
from metadelta.document.errors import DocumentError


def _default_always_included(root_tag: str) -> tuple[str, ...]:
    for d in DEFAULT_STRATEGIES:
        if d.root_tag == root_tag:
            return tuple(sorted(d.always_included))
    return ()


def run(
    *,
    old: str,
    new: str,
    output: str,
    destructive: str | None = None,
    root_tag: str | None = None,
    always_included: tuple[str, ...] | None = None,
) -> int:
    old_path = ensure_file(old)
    new_path = ensure_file(new)

    try:
        try:
            old_doc = parse(old_path.read_bytes())
        except DocumentError as e:
            raise e.with_path(str(old_path)) from None
        try:
            new_doc = parse(new_path.read_bytes())
        except DocumentError as e:
            raise e.with_path(str(new_path)) from None

        expected = root_tag or new_doc.root_tag
        if always_included is None:
            always_included = _default_always_included(expected)

        delta = DeltaOrchestrator().diff_documents(
            old_doc,
            new_doc,
            always_included=always_included,
            root_tag=expected,
            destructive=destructive is not None,
        )
    except DocumentError as e:
        print(f"metadelta: error: {e}", file=sys.stderr)
        return EXIT_FILE_ERRORS

    d = delta.diff
    print(f"Compound diff: +{len(d.changed)} changed  -{len(d.removed)} removed")

    if delta.change is not None:
        _write(output, delta.change)
        print(f"  changes: {output}")
    else:
        print("  no entry changes")

    if destructive is not None and delta.destructive is not None:
        _write(destructive, delta.destructive)
        print(f"  removed: {destructive}")

    return EXIT_OK


def _write(path: str, text: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
