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
Identity policies and section comparators.

Each section of a composite type is keyed by exactly one policy:

    FieldKey      single field              apexClass -> "MyController"
    CompositeKey  primary [+ "." optional]  layout, recordType -> "Account-Layout.Account.Rt"
    RangeKey      zero-padded boundaries    10.0.0.1, 10.0.0.9 -> "010.000.000.001.010.000.000.009"
    ConstantKey   singleton section         description -> "description"
    BodyKey       serialized entry body     (fallback for sections outside the table)
"""

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import auto
from functools import cmp_to_key
from typing import Any

from metadelta.document.errors import MissingIdentityFieldError
from metadelta.document.types import IdentityKey
from metadelta.utils.enum import StrEnum

RANGE_PAD_WIDTH = 3


class SortOrder(StrEnum):
    ORDINAL = auto()
    HIERARCHICAL = auto()


def _field_text(entry: Any, section: str, name: str) -> str:
    if not isinstance(entry, Mapping) or name not in entry:
        raise MissingIdentityFieldError(section, name)
    value = entry[name]
    if isinstance(value, Mapping) and "#text" in value:
        value = value["#text"]
    if isinstance(value, (Mapping, list, tuple)):
        raise MissingIdentityFieldError(section, name)
    return str(value)


def pad_dotted_number(value: str, width: int = RANGE_PAD_WIDTH) -> str:
    """Zero-pad each dotted component: "10.0.0.1" -> "010.000.000.001"."""
    return ".".join(part.zfill(width) for part in value.split("."))


# Policies


@dataclass(frozen=True, slots=True)
class FieldKey:
    field: str

    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        return IdentityKey.of(_field_text(entry, section, self.field))


@dataclass(frozen=True, slots=True)
class CompositeKey:
    primary: str
    optional: str

    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        head = _field_text(entry, section, self.primary)
        if isinstance(entry, Mapping) and entry.get(self.optional) not in (None, ""):
            return IdentityKey.of(head, _field_text(entry, section, self.optional))
        return IdentityKey.of(head)


@dataclass(frozen=True, slots=True)
class RangeKey:
    start: str
    end: str
    width: int = RANGE_PAD_WIDTH

    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        return IdentityKey.of(
            pad_dotted_number(_field_text(entry, section, self.start), self.width),
            pad_dotted_number(_field_text(entry, section, self.end), self.width),
        )


@dataclass(frozen=True, slots=True)
class ConstantKey:
    value: str | None = None

    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        return IdentityKey.of(self.value or section)


@dataclass(frozen=True, slots=True)
class BodyKey:
    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        return IdentityKey.of(body)


IdentityPolicy = FieldKey | CompositeKey | RangeKey | ConstantKey | BodyKey


# Comparators


def compare_hierarchical(left: str, right: str) -> int:
    """
    Order hierarchical keys ("Layout" / "Layout.Object.RecordType").

    - different segment counts, same first segment: fewer segments first
    - different segment counts, different first segment: by first segment
    - same segment count, first segments differ and one is a prefix of the
      other: the shorter (prefix) first segment sorts first
    - otherwise plain ordinal comparison of the whole key
    """
    if left == right:
        return 0

    left_parts = left.split(".")
    right_parts = right.split(".")
    left_head = left_parts[0]
    right_head = right_parts[0]

    if len(left_parts) != len(right_parts):
        if left_head == right_head:
            return 1 if len(left_parts) > len(right_parts) else -1
        return 1 if left_head > right_head else -1

    if left_head != right_head:
        if left_head.startswith(right_head):
            return 1
        if right_head.startswith(left_head):
            return -1

    return 1 if left > right else -1


_hierarchical_sort_key = cmp_to_key(compare_hierarchical)


# Section rules


@dataclass(frozen=True, slots=True)
class SectionRule:
    """Identity policy and comparator for one section."""

    policy: IdentityPolicy = field(default_factory=BodyKey)
    order: SortOrder = SortOrder.ORDINAL

    @property
    def is_constant(self) -> bool:
        return isinstance(self.policy, ConstantKey)

    @property
    def is_body_keyed(self) -> bool:
        return isinstance(self.policy, BodyKey)

    def identify(self, entry: Any, *, section: str, body: str) -> IdentityKey:
        return self.policy.identify(entry, section=section, body=body)

    def sort_key(self) -> Callable[[IdentityKey], Any]:
        # ties on the joined text break on the typed parts
        if self.order == SortOrder.HIERARCHICAL:
            return lambda key: (_hierarchical_sort_key(str(key)), key.parts)
        return lambda key: (str(key), key.parts)


DEFAULT_RULE = SectionRule()


def field_rule(name: str) -> SectionRule:
    return SectionRule(policy=FieldKey(name))


def constant_rule() -> SectionRule:
    return SectionRule(policy=ConstantKey())


def short_digest(text: str, length: int = 12) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]
