from __future__ import annotations

from pathlib import Path

import pytest

from gatekeeper.config import ConfigError, GatekeeperConfig, find_config_file, load_config_file
from gatekeeper.models import Severity

CONFIG_TEXT = """
config:
  min_severity: warn
  format: json
  strict: true
  exclude: [S3_001]
  workers: 2
rules:
  - id: ORG_001
    name: Resources carry an owner tag
    severity: info
    message: "{{.resource_address}} has no owner tag"
    condition: {attribute: tags.owner, operator: exists}
"""


def test_defaults() -> None:
    config = GatekeeperConfig()

    assert config.min_severity is Severity.INFO
    assert config.output_format == "text"
    assert config.strict_unknowns is False
    assert config.include == () and config.exclude == ()


def test_invalid_values_raise_config_error() -> None:
    with pytest.raises(ConfigError, match="invalid severity"):
        GatekeeperConfig(min_severity="urgent")
    with pytest.raises(ConfigError, match="unknown format"):
        GatekeeperConfig(output_format="xml")
    with pytest.raises(ConfigError):
        GatekeeperConfig(max_workers=0)
    with pytest.raises(ConfigError):
        GatekeeperConfig(timeout=0)


def test_with_overrides_ignores_none() -> None:
    config = GatekeeperConfig(min_severity="warning").with_overrides(min_severity=None, no_builtin=True)

    assert config.min_severity is Severity.WARNING
    assert config.no_builtin is True


def test_load_config_file_and_apply(tmp_path: Path) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_text(CONFIG_TEXT, encoding="utf-8")

    loaded = load_config_file(path)
    config = loaded.apply(GatekeeperConfig())

    assert [rule.id for rule in loaded.rules] == ["ORG_001"]
    assert loaded.rules[0].source == str(path.resolve())
    assert config.min_severity is Severity.WARNING
    assert config.output_format == "json"
    assert config.strict_unknowns is True
    assert config.exclude == ("S3_001",)
    assert config.max_workers == 2


def test_find_config_file_walks_up(tmp_path: Path) -> None:
    (tmp_path / ".gatekeeper.yml").write_text("config: {}\n", encoding="utf-8")
    nested = tmp_path / "envs" / "prod"
    nested.mkdir(parents=True)
    plan = nested / "plan.json"
    plan.write_text("{}", encoding="utf-8")

    assert find_config_file(plan) == (tmp_path / ".gatekeeper.yml").resolve()
    assert find_config_file(nested) == (tmp_path / ".gatekeeper.yml").resolve()


def test_bad_config_values_name_the_file(tmp_path: Path) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_text("config:\n  format: xml\n", encoding="utf-8")

    with pytest.raises(ConfigError, match=r"\.gatekeeper\.yaml: unknown format"):
        load_config_file(path).apply()


def test_malformed_config_file(tmp_path: Path) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_text("config: [\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config_file(path)


@pytest.mark.parametrize(
    ("setting", "fragment"),
    [
        ("workers: four", "workers must be an integer"),
        ("workers: true", "workers must be an integer"),
        ("timeout: soon", "timeout must be a number"),
        ("timeout: -5", "timeout must be positive"),
    ],
)
def test_non_numeric_limits_are_config_errors(tmp_path: Path, setting: str, fragment: str) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_text(f"config:\n  {setting}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match=fragment):
        load_config_file(path).apply()


def test_config_file_sets_timeout(tmp_path: Path) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_text("config:\n  timeout: 30\n", encoding="utf-8")

    assert load_config_file(path).apply().timeout == 30


def test_config_file_that_is_not_utf8(tmp_path: Path) -> None:
    path = tmp_path / ".gatekeeper.yaml"
    path.write_bytes(b"config:\n  format: \xff\xfe\n")

    with pytest.raises(ConfigError, match="not valid UTF-8"):
        load_config_file(path)
