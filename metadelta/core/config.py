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

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DeltaConfig:
    repo_root: Path
    from_ref: str
    package_dir: Path
    to_ref: str | None = None  # None: compare against the working tree
    destructive_dir: Path | None = None
    source_root: str | None = None  # None: use the config file / built-in default
    config_file: Path | None = None
    jobs: int = 1
