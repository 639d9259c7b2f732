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

from metadelta.delta.dispatch import (
    COMPANIONS,
    DEFAULT_SOURCE_ROOT,
    DEFAULT_STRATEGIES,
    META_SUFFIX,
    Resolution,
    StrategyTable,
)
from metadelta.delta.orchestrator import CompoundDelta, DeltaOrchestrator, WorkItem
from metadelta.delta.types import (
    VERBATIM_FALLBACK,
    DeltaReport,
    FileOutcome,
    PackageKind,
    PackageWrite,
    StrategyDescriptor,
    StrategyKind,
)

__all__ = [
    "StrategyKind",
    "PackageKind",
    "StrategyDescriptor",
    "VERBATIM_FALLBACK",
    "PackageWrite",
    "FileOutcome",
    "DeltaReport",
    "Resolution",
    "StrategyTable",
    "DEFAULT_STRATEGIES",
    "DEFAULT_SOURCE_ROOT",
    "META_SUFFIX",
    "COMPANIONS",
    "WorkItem",
    "CompoundDelta",
    "DeltaOrchestrator",
]
