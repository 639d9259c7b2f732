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

import json

from metadelta.delta.types import DeltaReport
from metadelta.utils.jsonutil import dumps_deterministic, to_jsonable


class JsonDeltaRenderer:
    """
    Deterministic JSON output (stable key order).

    compact=True renders a single line, suitable for piping.
    """

    def __init__(self, *, compact: bool = False):
        self.compact = compact

    def render(self, report: DeltaReport) -> str:
        if self.compact:
            return dumps_deterministic(report.to_dict()) + "\n"
        return json.dumps(to_jsonable(report.to_dict()), sort_keys=True, indent=2, ensure_ascii=False) + "\n"
