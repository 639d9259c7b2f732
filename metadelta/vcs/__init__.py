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

from metadelta.vcs.git import GitVCSProvider, VCSLookupError
from metadelta.vcs.source import GitRevisionSource, RevisionSource, WorkingTreeSource
from metadelta.vcs.types import ChangeStatus, StatusEntry

__all__ = [
    "GitVCSProvider",
    "VCSLookupError",
    "RevisionSource",
    "WorkingTreeSource",
    "GitRevisionSource",
    "ChangeStatus",
    "StatusEntry",
]
