from __future__ import annotations

from pathlib import Path

import pytest

from kes_exchange.config import ServiceConfig, load_config, resolve_config_path


def test_load_config_resolves_relative_database_path(tmp_path: Path) -> None:
    config_path = tmp_path / "exchange.yaml"
    config_path.write_text(
        "database_path: data/exchange.sqlite3\nhost: 0.0.0.0\nport: 9000\nlog_level: debug\n",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.database_path == tmp_path / "data" / "exchange.sqlite3"
    assert config.host == "0.0.0.0"
    assert config.port == 9000
    assert config.log_level == "DEBUG"


def test_missing_config_file_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.yaml")

    assert config.host == "127.0.0.1"
    assert config.port == 8000
    assert config.database_path.name == "exchange.sqlite3"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "exchange.yaml"
    config_path.write_text("", encoding="utf-8")

    assert load_config(config_path).port == 8000


@pytest.mark.parametrize(
    "data",
    [
        {"port": "not-a-port"},
        {"port": 70000},
        {"log_level": "chatty"},
        {"unexpected": True},
    ],
)
def test_invalid_settings_are_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        ServiceConfig.from_dict(data)


def test_top_level_must_be_a_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "exchange.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_resolve_config_path(tmp_path: Path) -> None:
    assert resolve_config_path(str(tmp_path / "custom.yaml")) == tmp_path / "custom.yaml"
    default = resolve_config_path(None)
    assert default.parts[-2:] == ("config", "exchange.yaml")
