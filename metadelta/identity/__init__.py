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

from metadelta.identity.keys import (
    DEFAULT_RULE,
    BodyKey,
    CompositeKey,
    ConstantKey,
    FieldKey,
    RangeKey,
    SectionRule,
    SortOrder,
    compare_hierarchical,
    pad_dotted_number,
)
from metadelta.identity.tables import BUILTIN_TYPES, DEFAULT_REGISTRY, CompositeType, TypeRegistry

__all__ = [
    "FieldKey",
    "CompositeKey",
    "RangeKey",
    "ConstantKey",
    "BodyKey",
    "SectionRule",
    "SortOrder",
    "DEFAULT_RULE",
    "compare_hierarchical",
    "pad_dotted_number",
    "CompositeType",
    "TypeRegistry",
    "BUILTIN_TYPES",
    "DEFAULT_REGISTRY",
]
