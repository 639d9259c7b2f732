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

"""Logging configuration for the command-line entry point."""

import logging
import os
import sys

LOG_LEVEL_ENV = "METADELTA_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str | None = None) -> None:
    """Route metadelta log records to stderr; stdout stays reserved for reports."""
    if log_level is None:
        log_level = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger = logging.getLogger("metadelta")
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
