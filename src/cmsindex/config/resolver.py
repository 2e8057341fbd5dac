"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from cmsindex.errors import ConfigError

from .models import IndexerConfig

ENV_PREFIX = "CMSINDEX__"
SOURCE_ORDER = ("file", "environment", "cli")


def resolve_with_precedence(
    *,
    defaults: IndexerConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> IndexerConfig:
    """Merge configuration sources; later sources win.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML config file.
        env_overrides: Nested values derived from ``CMSINDEX__`` variables.
        cli_overrides: Dotted-key values supplied on the command line.

    Returns:
        IndexerConfig: Validated configuration.

    Raises:
        ConfigError: If an override is malformed or the merged data is invalid.
    """
    merged = defaults.model_dump(mode="json")
    sources = dict(zip(SOURCE_ORDER, (file_overrides, env_overrides, cli_overrides)))
    for name in SOURCE_ORDER:
        source = sources[name]
        if source is None:
            continue
        merged = _deep_merge(merged, _normalize_mapping(source, source_name=name))

    try:
        return IndexerConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: IndexerConfig) -> Dict[str, str]:
    """Flatten the config into ``CMSINDEX__SECTION__KEY`` variable mappings.

    Lists (sites, allow-lists) are rendered as YAML flow sequences so they
    survive a round trip through ``ConfigManager``'s environment parsing.
    """
    flat: Dict[str, str] = {}

    def _recurse(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict) and value:
            for key, child in value.items():
                _recurse(prefix + [str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, (dict, list)):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[env_key] = "null"
        elif isinstance(value, bool):
            flat[env_key] = "true" if value else "false"
        else:
            flat[env_key] = str(value)

    for top_key, child_value in config.model_dump(mode="json").items():
        _recurse([str(top_key)], child_value)

    return flat


def _normalize_mapping(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in dict(source).items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        _assign(result, key.split("."), value, source_name=source_name)
    return result


def _assign(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"{source_name.capitalize()} override for {'.'.join(path)} "
                "conflicts with existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, MappingABC):
        nested = _normalize_mapping(value, source_name=source_name)
        existing_leaf = node.get(leaf)
        base = existing_leaf if isinstance(existing_leaf, MappingABC) else {}
        node[leaf] = _deep_merge(base, nested)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["resolve_with_precedence", "flatten_for_env", "ENV_PREFIX"]
