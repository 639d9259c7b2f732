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

from collections.abc import Sequence
from dataclasses import dataclass
from enum import auto
from typing import Any

from metadelta.utils.enum import StrEnum


class ChangeStatus(StrEnum):
    ADDED = auto()
    MODIFIED = auto()
    DELETED = auto()
    RENAMED = auto()
    COPIED = auto()

    @staticmethod
    def from_code(code: str) -> "ChangeStatus":
        """
        Map a `git diff --name-status` code (A, M, D, R100, C075, T, ...) to a status.

        Anything that is not an add, delete, rename or copy counts as a modification.
        """
        letter = code[:1].upper()
        if letter == "A":
            return ChangeStatus.ADDED
        if letter == "D":
            return ChangeStatus.DELETED
        if letter == "R":
            return ChangeStatus.RENAMED
        if letter == "C":
            return ChangeStatus.COPIED
        return ChangeStatus.MODIFIED


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """
    One line of a version-control status list.

    For renames and copies `path` is the source and `new_path` the target.
    """

    status: ChangeStatus
    path: str
    new_path: str | None = None
    score: int | None = None

    @property
    def target(self) -> str:
        return self.new_path or self.path

    @staticmethod
    def from_fields(fields: Sequence[str]) -> "StatusEntry":
        code = fields[0]
        status = ChangeStatus.from_code(code)
        score = int(code[1:]) if len(code) > 1 and code[1:].isdigit() else None
        new_path = fields[2] if status in (ChangeStatus.RENAMED, ChangeStatus.COPIED) and len(fields) > 2 else None
        return StatusEntry(status=status, path=fields[1], new_path=new_path, score=score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "path": self.path,
            "new_path": self.new_path,
            "score": self.score,
        }
