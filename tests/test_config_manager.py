"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from cmsindex.config import (
    ConfigError,
    ConfigManager,
    IndexerConfig,
    flatten_for_env,
    resolve_with_precedence,
)
from cmsindex.content import ItemKind


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("CMSINDEX_CONFIG", raising=False)
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".cmsindex" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "cmsindex configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, IndexerConfig)
    assert config.frontend_fetch.enabled is False
    assert config.eligibility.asset_kinds == ["pdf"]


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.save({"index": {"prefix": "site-"}, "frontend_fetch": {"timeout_seconds": 5}})

    env = {"CMSINDEX__FRONTEND_FETCH__TIMEOUT_SECONDS": "7", "CMSINDEX__BULK__MAX_WORKERS": "2"}
    cli = {"frontend_fetch.timeout_seconds": 3}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.index.prefix == "site-"
    assert config.bulk.max_workers == 2
    # CLI overrides take precedence over environment
    assert config.frontend_fetch.timeout_seconds == pytest.approx(3)


def test_environment_lists_are_parsed_as_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    config = manager.load(
        env_overrides={
            "CMSINDEX__ELIGIBILITY__ENABLED_KINDS": "[entry, asset]",
            "CMSINDEX__CONTENT__EXCLUDED__ENTRY_TYPES": "[internalPages]",
        }
    )

    assert config.eligibility.enabled_kinds == [ItemKind.ENTRY, ItemKind.ASSET]
    assert config.content.excluded.entry_types == ["internalPages"]


def test_config_path_can_come_from_environment(tmp_path: Path) -> None:
    target = tmp_path / "custom" / "cmsindex.yaml"

    manager = ConfigManager(env={"CMSINDEX_CONFIG": str(target)})
    manager.ensure_exists()

    assert manager.config_path == target
    assert target.exists()


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(IndexerConfig())

    assert flat["CMSINDEX__INDEX__PREFIX"] == "cms-"
    assert flat["CMSINDEX__FRONTEND_FETCH__ENABLED"] == "false"
    assert flat["CMSINDEX__FRONTEND_FETCH__MAX_CONTENT_BYTES"] == "102400"
    assert flat["CMSINDEX__CONTENT__CONTENT_CALLBACK"] == "null"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=IndexerConfig(),
            file_overrides={"bulk": {"max_workers": "not-an-int"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=IndexerConfig(),
            file_overrides={"frontend_fetch": {"follow_everything": True}},
        )
