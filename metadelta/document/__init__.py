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

from metadelta.document.codec import parse, serialize
from metadelta.document.errors import (
    DocumentError,
    IdentityCollisionError,
    IdentityError,
    MissingIdentityFieldError,
    ParseError,
)
from metadelta.document.types import (
    METADATA_NAMESPACE,
    XML_DECLARATION,
    DiffResult,
    Document,
    FlatEntry,
    IdentityKey,
)

__all__ = [
    # Types
    "Document",
    "IdentityKey",
    "FlatEntry",
    "DiffResult",
    "METADATA_NAMESPACE",
    "XML_DECLARATION",
    # Codec
    "parse",
    "serialize",
    # Errors
    "DocumentError",
    "ParseError",
    "IdentityError",
    "IdentityCollisionError",
    "MissingIdentityFieldError",
]
