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

from metadelta.compound.compose import CanonicalComposer
from metadelta.compound.decompose import DefaultDecomposer, EntryFile, entry_filename
from metadelta.compound.diff import DefaultSetDiffer
from metadelta.compound.flatten import DefaultEntryFlattener, entry_body

__all__ = [
    "DefaultEntryFlattener",
    "DefaultSetDiffer",
    "CanonicalComposer",
    "DefaultDecomposer",
    "EntryFile",
    "entry_body",
    "entry_filename",
]
