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

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from metadelta.identity.keys import (
    DEFAULT_RULE,
    CompositeKey,
    RangeKey,
    SectionRule,
    SortOrder,
    constant_rule,
    field_rule,
)


@dataclass(frozen=True, slots=True)
class CompositeType:
    """
    Identity table of one composite metadata type.

    sections:
        section name -> SectionRule. Sections not listed fall back to the
        generic body-keyed rule.
    leading_sections:
        sections emitted before all others, in this order. The remaining
        sections are emitted in ascending name order.
    """

    root_tag: str
    sections: Mapping[str, SectionRule] = field(default_factory=dict)
    leading_sections: tuple[str, ...] = ()

    def rule_for(self, section: str) -> SectionRule:
        return self.sections.get(section, DEFAULT_RULE)

    def section_order(self, sections: Iterable[str]) -> list[str]:
        names = list(dict.fromkeys(sections))
        leading = [s for s in self.leading_sections if s in names]
        rest = sorted(s for s in names if s not in self.leading_sections)
        return leading + rest


# Built-in tables

_PROFILE_ACCESS: dict[str, SectionRule] = {
    "applicationVisibilities": field_rule("application"),
    "categoryGroupVisibilities": field_rule("dataCategoryGroup"),
    "classAccesses": field_rule("apexClass"),
    "custom": constant_rule(),
    "customMetadataTypeAccesses": field_rule("name"),
    "customPermissions": field_rule("name"),
    "customSettingAccesses": field_rule("name"),
    "description": constant_rule(),
    "externalDataSourceAccesses": field_rule("externalDataSource"),
    "fieldPermissions": field_rule("field"),
    "flowAccesses": field_rule("flowName"),
    "fullName": constant_rule(),
    "layoutAssignments": SectionRule(
        policy=CompositeKey(primary="layout", optional="recordType"),
        order=SortOrder.HIERARCHICAL,
    ),
    "loginHours": constant_rule(),
    "loginIpRanges": SectionRule(policy=RangeKey(start="startAddress", end="endAddress")),
    "objectPermissions": field_rule("object"),
    "pageAccesses": field_rule("apexPage"),
    "profileActionOverrides": field_rule("actionName"),
    "recordTypeVisibilities": field_rule("recordType"),
    "tabVisibilities": field_rule("tab"),
    "userLicense": constant_rule(),
    "userPermissions": field_rule("name"),
}

_PERMISSION_SET_EXTRA: dict[str, SectionRule] = {
    "hasActivationRequired": constant_rule(),
    "label": constant_rule(),
    "license": constant_rule(),
    "tabSettings": field_rule("tab"),
}


def _by_full_name(*sections: str) -> dict[str, SectionRule]:
    return {s: field_rule("fullName") for s in sections}


def _by_name(*sections: str) -> dict[str, SectionRule]:
    return {s: field_rule("name") for s in sections}


BUILTIN_TYPES: tuple[CompositeType, ...] = (
    CompositeType(root_tag="Profile", sections=dict(_PROFILE_ACCESS)),
    CompositeType(root_tag="PermissionSet", sections={**_PROFILE_ACCESS, **_PERMISSION_SET_EXTRA}),
    CompositeType(root_tag="CustomLabels", sections=_by_full_name("labels")),
    CompositeType(
        root_tag="RecordType",
        sections={
            "fullName": constant_rule(),
            "active": constant_rule(),
            "businessProcess": constant_rule(),
            "compactLayoutAssignment": constant_rule(),
            "description": constant_rule(),
            "label": constant_rule(),
            "picklistValues": field_rule("picklist"),
        },
        leading_sections=("fullName",),
    ),
    CompositeType(
        root_tag="SharingRules",
        sections=_by_full_name(
            "sharingCriteriaRules",
            "sharingGuestRules",
            "sharingOwnerRules",
            "sharingTerritoryRules",
        ),
    ),
    CompositeType(root_tag="AssignmentRules", sections=_by_full_name("assignmentRule")),
    CompositeType(root_tag="AutoResponseRules", sections=_by_full_name("autoResponseRule")),
    CompositeType(root_tag="MatchingRules", sections=_by_full_name("matchingRules")),
    CompositeType(
        root_tag="Workflow",
        sections=_by_full_name(
            "alerts",
            "fieldUpdates",
            "flowActions",
            "knowledgePublishes",
            "outboundMessages",
            "rules",
            "send",
            "tasks",
        ),
    ),
    CompositeType(
        root_tag="Translations",
        sections=_by_name(
            "customApplications",
            "customLabels",
            "customPageWebLinks",
            "customTabs",
            "flowDefinitions",
            "globalPicklists",
            "prompts",
            "quickActions",
            "reportTypes",
            "scontrols",
        ),
    ),
)


class TypeRegistry:
    """
    Lookup of composite types by root tag.

    Unknown root tags resolve to a table-less type, so every section of such
    a document is keyed by its serialized body.
    """

    def __init__(self, types: Iterable[CompositeType] = BUILTIN_TYPES) -> None:
        self._types: dict[str, CompositeType] = {t.root_tag: t for t in types}

    def get(self, root_tag: str) -> CompositeType:
        found = self._types.get(root_tag)
        if found is not None:
            return found
        return CompositeType(root_tag=root_tag)

    def __contains__(self, root_tag: object) -> bool:
        return root_tag in self._types

    def root_tags(self) -> tuple[str, ...]:
        return tuple(sorted(self._types))

    def merged(self, extra: Iterable[CompositeType]) -> "TypeRegistry":
        """
        Return a new registry with extra types layered on top.

        An extra type with a known root tag extends that type's section table
        (its rules win) instead of replacing it.
        """
        combined = dict(self._types)
        for t in extra:
            base = combined.get(t.root_tag)
            if base is None:
                combined[t.root_tag] = t
                continue
            combined[t.root_tag] = CompositeType(
                root_tag=t.root_tag,
                sections={**base.sections, **t.sections},
                leading_sections=t.leading_sections or base.leading_sections,
            )
        return TypeRegistry(combined.values())


DEFAULT_REGISTRY = TypeRegistry()
