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

import subprocess
from dataclasses import dataclass
from pathlib import Path

from metadelta.vcs.types import ChangeStatus, StatusEntry

DEFAULT_TIMEOUT = 60


class VCSLookupError(Exception):
    """
    Raised when git cannot answer a question about history.

    Typical causes: unknown revision, path missing at that revision,
    git not installed, not a repository.
    """

    def __init__(self, message: str, *, command: list[str] | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.command = command
        self.stderr = stderr

    def __str__(self) -> str:
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else ""
        return f"{self.message}: {detail}" if detail else self.message


def _parse_name_status(output: str) -> list[StatusEntry]:
    """
    Parse `git diff --name-status -z` output.

    Records are NUL separated: <code> <path> [<new path> for R/C].
    """
    tokens = output.split("\0")
    entries: list[StatusEntry] = []
    i = 0
    while i < len(tokens):
        code = tokens[i]
        if not code:
            i += 1
            continue
        status = ChangeStatus.from_code(code)
        width = 3 if status in (ChangeStatus.RENAMED, ChangeStatus.COPIED) else 2
        fields = tokens[i : i + width]
        if len(fields) < width:
            break
        entries.append(StatusEntry.from_fields(fields))
        i += width
    return entries


@dataclass(frozen=True, slots=True)
class GitVCSProvider:
    """
    Git-based snapshot provider.

    Provides:
      - status list between two revisions (or a revision and the working tree)
      - file content at a revision
      - file listing of a directory at a revision

    All operations are read-only. Historical reads fully drain `git show`
    before returning.
    """

    timeout: int = DEFAULT_TIMEOUT

    def _run(self, repo_root: str | Path, args: list[str]) -> subprocess.CompletedProcess:
        command = ["git", *args]
        try:
            return subprocess.run(
                command,
                cwd=str(repo_root),
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise VCSLookupError("git executable not found", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise VCSLookupError(f"git timed out after {self.timeout}s", command=command) from e

    def status_list(self, repo_root: str | Path, from_ref: str, to_ref: str | None = None) -> list[StatusEntry]:
        """
        Changed paths between `from_ref` and `to_ref`.

        Args:
            repo_root: Path to repository root
            from_ref: Base revision
            to_ref: Target revision; None compares against the working tree

        Returns:
            Status entries in git's order
        """
        args = ["diff", "--name-status", "-z", "--no-color", "--find-renames", from_ref]
        if to_ref:
            args.append(to_ref)
        args.append("--")

        result = self._run(repo_root, args)
        if result.returncode != 0:
            raise VCSLookupError(
                f"Cannot list changes {from_ref}..{to_ref or 'working tree'}",
                command=["git", *args],
                stderr=result.stderr.decode("utf-8", errors="replace"),
            )
        return _parse_name_status(result.stdout.decode("utf-8", errors="surrogateescape"))

    def show(self, repo_root: str | Path, ref: str, path: str) -> bytes:
        """
        Raw content of `path` at revision `ref`.

        Raises:
            VCSLookupError: revision or path not found
        """
        args = ["show", f"{ref}:{path}"]
        result = self._run(repo_root, args)
        if result.returncode != 0:
            raise VCSLookupError(
                f"Cannot read {path} at {ref}",
                command=["git", *args],
                stderr=result.stderr.decode("utf-8", errors="replace"),
            )
        return result.stdout

    def exists_at(self, repo_root: str | Path, ref: str, path: str) -> bool:
        result = self._run(repo_root, ["cat-file", "-e", f"{ref}:{path}"])
        return result.returncode == 0

    def list_files(self, repo_root: str | Path, ref: str, directory: str) -> list[str]:
        """
        Repository-relative paths of all files below `directory` at `ref`.
        """
        args = ["ls-tree", "-r", "-z", "--name-only", ref, "--", directory.rstrip("/") + "/"]
        result = self._run(repo_root, args)
        if result.returncode != 0:
            raise VCSLookupError(
                f"Cannot list {directory} at {ref}",
                command=["git", *args],
                stderr=result.stderr.decode("utf-8", errors="replace"),
            )
        names = result.stdout.decode("utf-8", errors="surrogateescape").split("\0")
        return sorted(n for n in names if n)

    def resolve_ref(self, repo_root: str | Path, ref: str) -> str | None:
        """
        Resolve a revision to its commit SHA.

        Returns:
            Commit SHA string, or None if the revision is unknown
        """
        try:
            result = self._run(repo_root, ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        except VCSLookupError:
            return None
        if result.returncode == 0:
            return result.stdout.decode("utf-8").strip()
        return None
