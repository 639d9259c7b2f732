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

from metadelta.cli.exitcodes import EXIT_FILE_ERRORS, EXIT_OK
from metadelta.compound.decompose import DefaultDecomposer
from metadelta.document.errors import DocumentError


def run(*, input_dir: str, output: str, root_tag: str | None = None) -> int:
    try:
        document = DefaultDecomposer().compose(input_dir, output, root_tag=root_tag)
    except DocumentError as e:
        print(f"metadelta: error: {e}", file=sys.stderr)
        return EXIT_FILE_ERRORS

    entries = sum(len(document.entries(s)) for s in document.section_names())
    print(f"Composed {entries} entries from {input_dir} into {output}")
    return EXIT_OK
