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

from collections.abc import Mapping
from typing import Any


class DocumentError(Exception):
    """
    Base class for all document-level errors.

    A document error aborts processing of the current file only. Callers
    that walk many files record it against the offending path and move on.
    """

    code: str
    message: str
    path: str | None = None
    details: Mapping[str, Any] | None = None

    def __init__(
        self,
        message: str,
        code: str = "document_error",
        path: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.path = path
        self.details = details

    def with_path(self, path: str) -> "DocumentError":
        if self.path is None:
            self.path = path
        return self

    def __str__(self) -> str:
        loc = f"{self.path}: " if self.path else ""
        return f"{loc}{self.message}"


class ParseError(DocumentError):
    """Raised when document content is not well-formed or has the wrong shape."""

    def __init__(self, message: str, code: str = "parse_error", **kwargs: Any) -> None:
        super().__init__(message, code=code, **kwargs)


class IdentityError(DocumentError):
    """Raised when an entry's identity key cannot be determined safely."""

    pass


class IdentityCollisionError(IdentityError):
    """Raised when two entries of one section share an identity key."""

    def __init__(self, section: str, key: str, **kwargs: Any) -> None:
        super().__init__(
            f"Duplicate identity key {key!r} in section {section!r}",
            code="identity_collision",
            details={"section": section, "key": key},
            **kwargs,
        )
        self.section = section
        self.key = key


class MissingIdentityFieldError(IdentityError):
    """Raised when an entry lacks the field its section is keyed on."""

    def __init__(self, section: str, field: str, **kwargs: Any) -> None:
        super().__init__(
            f"Entry in section {section!r} has no {field!r} field",
            code="missing_identity_field",
            details={"section": section, "field": field},
            **kwargs,
        )
        self.section = section
        self.field = field
