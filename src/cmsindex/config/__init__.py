"""Configuration management for cmsindex."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from cmsindex.errors import ConfigError

from .models import IndexerConfig
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.cmsindex/config.yaml")
CONFIG_PATH_ENV = "CMSINDEX_CONFIG"
_CONFIG_HEADER = textwrap.dedent(
    """\
    # cmsindex configuration file
    # Generated automatically; update values with `cmsindex config set KEY --value VALUE`.
    # Environment variables named CMSINDEX__SECTION__KEY override values below.
    """
)


class ConfigManager:
    """Load and persist indexer configuration, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        if config_path is None and self._env.get(CONFIG_PATH_ENV):
            config_path = Path(self._env[CONFIG_PATH_ENV])
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> IndexerConfig:
        """Load configuration from disk and the environment.

        Args:
            cli_overrides: Dotted-key overrides with the highest precedence.
            include_env: Whether ``CMSINDEX__`` variables are applied.
            ensure_file: Create a default file when none exists.
            env_overrides: Explicit environment mapping used instead of ``os.environ``.

        Returns:
            IndexerConfig: The effective configuration.
        """
        if ensure_file:
            self.ensure_exists()

        env_data = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=IndexerConfig(),
            file_overrides=self._read_file(),
            env_overrides=self._extract_env(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: IndexerConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if isinstance(config, IndexerConfig):
            data = config.model_dump(mode="json")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self._write_file(IndexerConfig().model_dump(mode="json"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{serialized}", encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
            if not path:
                continue
            try:
                parsed_value: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                parsed_value = raw_value

            current = overrides
            for segment in path[:-1]:
                existing = current.get(segment)
                if not isinstance(existing, dict):
                    existing = {}
                    current[segment] = existing
                current = existing
            current[path[-1]] = parsed_value

        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "CONFIG_PATH_ENV",
    "IndexerConfig",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
]
