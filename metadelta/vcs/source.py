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
Read-only views of one revision of the repository.

All paths are repository-relative, "/"-separated.
"""

from pathlib import Path
from typing import Protocol

from metadelta.vcs.git import GitVCSProvider


class RevisionSource(Protocol):
    label: str

    def read(self, path: str) -> bytes: ...

    def exists(self, path: str) -> bool: ...

    def list_files(self, directory: str) -> list[str]: ...


class WorkingTreeSource:
    """The checked-out files on disk."""

    label = "working tree"

    def __init__(self, repo_root: str | Path) -> None:
        self._root = Path(repo_root)

    def _abs(self, path: str) -> Path:
        return self._root / Path(*path.split("/"))

    def read(self, path: str) -> bytes:
        return self._abs(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._abs(path).is_file()

    def list_files(self, directory: str) -> list[str]:
        base = self._abs(directory)
        if not base.is_dir():
            raise FileNotFoundError(f"Directory does not exist: {base}")
        return sorted(p.relative_to(self._root).as_posix() for p in base.rglob("*") if p.is_file())


class GitRevisionSource:
    """Files as recorded at one git revision."""

    def __init__(self, repo_root: str | Path, ref: str, vcs: GitVCSProvider | None = None) -> None:
        self._root = Path(repo_root)
        self.ref = ref
        self.vcs = vcs or GitVCSProvider()
        self.label = ref

    def read(self, path: str) -> bytes:
        return self.vcs.show(self._root, self.ref, path)

    def exists(self, path: str) -> bool:
        return self.vcs.exists_at(self._root, self.ref, path)

    def list_files(self, directory: str) -> list[str]:
        return self.vcs.list_files(self._root, self.ref, directory)
