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

from metadelta.cli._io import ensure_file
from metadelta.cli.exitcodes import EXIT_FILE_ERRORS, EXIT_OK
from metadelta.compound.decompose import DefaultDecomposer
from metadelta.document.codec import parse
from metadelta.document.errors import DocumentError, ParseError


def run(*, source: str, output: str, root_tag: str | None = None) -> int:
    path = ensure_file(source)
    try:
        if root_tag is not None:
            found = parse(path.read_bytes()).root_tag
            if found != root_tag:
                raise ParseError(f"Expected root tag {root_tag!r}, found {found!r}", code="root_tag_mismatch")
        written = DefaultDecomposer().decompose(path, output)
    except DocumentError as e:
        print(f"metadelta: error: {e.with_path(str(path))}", file=sys.stderr)
        return EXIT_FILE_ERRORS

    print(f"Decomposed {path} into {len(written)} entry files under {output}")
    return EXIT_OK
