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

from pathlib import Path

from metadelta.cli._io import ensure_repo_root
from metadelta.cli.exitcodes import exit_code_from_report
from metadelta.core.config import DeltaConfig
from metadelta.core.loader import load_config
from metadelta.delta.orchestrator import DeltaOrchestrator
from metadelta.reporting.renderers.json import JsonDeltaRenderer
from metadelta.reporting.renderers.text import TextDeltaRenderer


def run(
    *,
    path: str,
    from_ref: str,
    to_ref: str | None,
    package_dir: str,
    destructive_dir: str | None,
    source_root: str | None,
    config: str | None,
    jobs: int = 1,
    fmt: str = "text",
    verbosity: str = "normal",
) -> int:
    repo_root = ensure_repo_root(path)
    loaded = load_config(repo_root, config)

    cfg = DeltaConfig(
        repo_root=repo_root,
        from_ref=from_ref,
        to_ref=to_ref,
        package_dir=Path(package_dir).resolve(),
        destructive_dir=None if destructive_dir is None else Path(destructive_dir).resolve(),
        source_root=source_root,
        config_file=loaded.path,
        jobs=max(1, jobs),
    )

    orchestrator = DeltaOrchestrator(
        table=loaded.strategy_table(source_root=source_root),
        registry=loaded.type_registry(),
    )
    report = orchestrator.run(cfg)

    if fmt == "json":
        out = JsonDeltaRenderer().render(report)
    else:
        out = TextDeltaRenderer(verbosity=verbosity).render(report)  # type: ignore[arg-type]
    print(out, end="")

    return exit_code_from_report(report)
