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
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from metadelta.delta.dispatch import COMPANIONS, DEFAULT_SOURCE_ROOT, StrategyTable
from metadelta.delta.types import StrategyDescriptor, StrategyKind
from metadelta.identity.keys import (
    CompositeKey,
    ConstantKey,
    FieldKey,
    IdentityPolicy,
    RangeKey,
    SectionRule,
    SortOrder,
)
from metadelta.identity.tables import DEFAULT_REGISTRY, CompositeType, TypeRegistry

CONFIG_FILE_NAMES = ("metadelta.yaml", "metadelta.yml", "metadelta.json")


@dataclass(frozen=True, slots=True)
class ConfigLoadError(Exception):
    code: str
    message: str
    details: Mapping[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """
    Project configuration layered over the built-in tables.
    """

    version: int = 1
    source_root: str | None = None
    strategies: tuple[StrategyDescriptor, ...] = ()
    types: tuple[CompositeType, ...] = ()
    path: Path | None = None

    def strategy_table(self, *, source_root: str | None = None) -> StrategyTable:
        root = source_root or self.source_root or DEFAULT_SOURCE_ROOT
        return StrategyTable(source_root=root).extended(self.strategies)

    def type_registry(self, base: TypeRegistry = DEFAULT_REGISTRY) -> TypeRegistry:
        return base.merged(self.types)


def default_config_file(repo_root: str | Path) -> Path | None:
    p = Path(repo_root)
    for name in CONFIG_FILE_NAMES:
        candidate = p / name
        if candidate.exists():
            return candidate
    return None


def _snake(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value.strip()).replace("-", "_").lower()


def _str_tuple(raw: Any, *, code: str, what: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,) if raw.strip() else ()
    if isinstance(raw, (list, tuple)):
        return tuple(str(x) for x in raw if str(x).strip())
    raise ConfigLoadError(code=code, message=f"{what} must be a string or a list of strings.")


class DefaultConfigLoader:
    """
    Loads project configuration from metadelta.yaml / metadelta.yml / metadelta.json
    """

    def load(self, path: Path) -> LoadedConfig:
        if not isinstance(path, Path):
            path = Path(path)

        if not path.exists():
            raise ConfigLoadError(code="config_not_found", message=f"Config file does not exist: {path}")

        data = self._read_config_file(path)

        if data is None:
            return LoadedConfig(path=path)

        if not isinstance(data, dict):
            raise ConfigLoadError(code="invalid_config", message="Config root must be a mapping/object.")

        version = data.get("version", 1)
        if not isinstance(version, int):
            raise ConfigLoadError(code="invalid_version", message="'version' must be an integer.")

        source_root = data.get("source_root")
        if source_root is not None and not isinstance(source_root, str):
            raise ConfigLoadError(code="invalid_source_root", message="'source_root' must be a string.")

        return LoadedConfig(
            version=version,
            source_root=source_root.strip("/") if isinstance(source_root, str) else None,
            strategies=self._parse_strategies(data.get("strategies")),
            types=self._parse_types(data.get("types")),
            path=path,
        )

    def _read_config_file(self, path: Path) -> Any:
        suffix = path.suffix.lower()
        raw = path.read_text(encoding="utf-8")

        if suffix == ".json":
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise ConfigLoadError(code="invalid_json", message=str(e), details={"path": str(path)}) from e

        try:
            import yaml
        except Exception as e:
            raise ConfigLoadError(
                code="yaml_dependency_missing",
                message="YAML config requires dependency PyYAML.",
                details={"hint": "pip install pyyaml", "path": str(path)},
            ) from e

        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigLoadError(code="invalid_yaml", message=str(e), details={"path": str(path)}) from e

    def _parse_strategies(self, raw: Any) -> tuple[StrategyDescriptor, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise ConfigLoadError(code="invalid_strategies", message="'strategies' must be a list when present.")

        out: list[StrategyDescriptor] = []
        for item in raw:
            if not isinstance(item, dict):
                raise ConfigLoadError(code="invalid_strategy", message="Each strategy must be an object.")

            pattern = item.get("pattern")
            if not isinstance(pattern, str) or not pattern.strip("/ "):
                raise ConfigLoadError(code="invalid_strategy", message="Strategy 'pattern' must be a non-empty string.")

            kind_raw = item.get("kind", StrategyKind.VERBATIM.value)
            try:
                kind = StrategyKind(_snake(str(kind_raw)))
            except ValueError as e:
                raise ConfigLoadError(
                    code="invalid_strategy_kind",
                    message=f"Unknown strategy kind {kind_raw!r} for pattern {pattern!r}.",
                    details={"supported": [k.value for k in StrategyKind]},
                ) from e

            root_tag = item.get("root_tag")
            if kind == StrategyKind.COMPOUND_DIFF and (not isinstance(root_tag, str) or not root_tag.strip()):
                raise ConfigLoadError(
                    code="missing_root_tag",
                    message=f"Strategy {pattern!r} is a compound diff and needs a 'root_tag'.",
                )

            companion = item.get("companion")
            if companion is not None and companion not in COMPANIONS:
                raise ConfigLoadError(
                    code="unknown_companion",
                    message=f"Unknown companion {companion!r} for pattern {pattern!r}.",
                    details={"supported": sorted(COMPANIONS)},
                )

            out.append(
                StrategyDescriptor(
                    pattern=pattern.strip("/ "),
                    kind=kind,
                    root_tag=root_tag,
                    always_included=frozenset(
                        _str_tuple(item.get("always_included"), code="invalid_strategy", what="'always_included'")
                    ),
                    destructive=bool(item.get("destructive", kind == StrategyKind.COMPOUND_DIFF)),
                    companion=companion,
                )
            )
        return tuple(out)

    def _parse_types(self, raw: Any) -> tuple[CompositeType, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, dict):
            raise ConfigLoadError(code="invalid_types", message="'types' must be a mapping/object.")

        out: list[CompositeType] = []
        for root_tag, type_cfg in raw.items():
            if not isinstance(root_tag, str) or not root_tag.strip():
                continue
            if type_cfg is None:
                out.append(CompositeType(root_tag=root_tag))
                continue
            if not isinstance(type_cfg, dict):
                raise ConfigLoadError(code="invalid_type", message=f"Type '{root_tag}' must be an object.")

            sections_raw = type_cfg.get("sections") or {}
            if not isinstance(sections_raw, dict):
                raise ConfigLoadError(
                    code="invalid_sections",
                    message=f"'sections' of type '{root_tag}' must be a mapping/object.",
                )

            sections = {
                str(name): self._parse_section_rule(root_tag, str(name), rule) for name, rule in sections_raw.items()
            }
            out.append(
                CompositeType(
                    root_tag=root_tag,
                    sections=sections,
                    leading_sections=_str_tuple(
                        type_cfg.get("leading_sections"), code="invalid_type", what="'leading_sections'"
                    ),
                )
            )
        return tuple(out)

    def _parse_section_rule(self, root_tag: str, section: str, raw: Any) -> SectionRule:
        # Support:
        # sections:
        #   labels: fullName
        # OR:
        #   layoutAssignments: { key: [layout, recordType], order: hierarchical }
        if isinstance(raw, str):
            return SectionRule(policy=FieldKey(raw))

        if not isinstance(raw, dict):
            raise ConfigLoadError(
                code="invalid_section_rule",
                message=f"Section '{root_tag}.{section}' must be a field name or an object.",
            )

        policy: IdentityPolicy
        if raw.get("constant"):
            policy = ConstantKey()
        elif "range" in raw:
            bounds = _str_tuple(raw["range"], code="invalid_section_rule", what="'range'")
            if len(bounds) != 2:
                raise ConfigLoadError(
                    code="invalid_section_rule",
                    message=f"'range' of section '{root_tag}.{section}' needs exactly two fields.",
                )
            policy = RangeKey(start=bounds[0], end=bounds[1])
        elif "key" in raw:
            fields = _str_tuple(raw["key"], code="invalid_section_rule", what="'key'")
            if len(fields) == 1:
                policy = FieldKey(fields[0])
            elif len(fields) == 2:
                policy = CompositeKey(primary=fields[0], optional=fields[1])
            else:
                raise ConfigLoadError(
                    code="invalid_section_rule",
                    message=f"'key' of section '{root_tag}.{section}' takes one or two fields.",
                )
        else:
            raise ConfigLoadError(
                code="invalid_section_rule",
                message=f"Section '{root_tag}.{section}' needs one of 'key', 'range' or 'constant'.",
            )

        order_raw = raw.get("order", SortOrder.ORDINAL.value)
        try:
            order = SortOrder(str(order_raw).lower())
        except ValueError as e:
            raise ConfigLoadError(
                code="invalid_section_order",
                message=f"Unknown order {order_raw!r} for section '{root_tag}.{section}'.",
                details={"supported": [o.value for o in SortOrder]},
            ) from e

        return SectionRule(policy=policy, order=order)


def load_config(repo_root: str | Path, config_file: str | Path | None = None) -> LoadedConfig:
    """Load the explicit config file, else the repository default, else built-ins only."""
    if config_file is not None:
        path = Path(config_file)
        if not path.is_absolute():
            path = Path(repo_root) / path
        return DefaultConfigLoader().load(path)

    found = default_config_file(repo_root)
    if found is None:
        return LoadedConfig()
    return DefaultConfigLoader().load(found)


__all__ = [
    "ConfigLoadError",
    "LoadedConfig",
    "DefaultConfigLoader",
    "default_config_file",
    "load_config",
]
