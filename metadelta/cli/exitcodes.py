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

from metadelta.delta.types import DeltaReport

EXIT_OK = 0
EXIT_FILE_ERRORS = 1
EXIT_ENGINE_ERROR = 2


def exit_code_from_report(report: DeltaReport) -> int:
    """
    Policy:
      - any path failed => EXIT_FILE_ERRORS
      - else EXIT_OK

    Engine errors never produce a report; the CLI maps them to EXIT_ENGINE_ERROR.
    """
    if report.failed:
        return EXIT_FILE_ERRORS
    return EXIT_OK
