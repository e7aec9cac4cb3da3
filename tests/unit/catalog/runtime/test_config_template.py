"""Tests for config.yaml loading and ${VAR} substitution."""

import os
from pathlib import Path

import pytest

from src.catalog.runtime.config.config_template import (
    apply_environment_overrides,
    load_templated_yaml,
    substitute_env_vars,
)


class TestSubstituteEnvVars:
    def test_plain_variable(self, monkeypatch):
        monkeypatch.setenv("CATALOG_TEST_VALUE", "abc")

        assert substitute_env_vars("value: ${CATALOG_TEST_VALUE}") == "value: abc"

    def test_missing_plain_variable(self, monkeypatch):
        monkeypatch.delenv("CATALOG_TEST_VALUE", raising=False)

        with pytest.raises(ValueError, match="CATALOG_TEST_VALUE"):
            substitute_env_vars("${CATALOG_TEST_VALUE}")

    def test_default(self, monkeypatch):
        monkeypatch.delenv("CATALOG_TEST_VALUE", raising=False)

        assert substitute_env_vars("${CATALOG_TEST_VALUE:-fallback}") == "fallback"

    def test_default_is_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("CATALOG_TEST_VALUE", "set")

        assert substitute_env_vars("${CATALOG_TEST_VALUE:-fallback}") == "set"

    def test_required_with_message(self, monkeypatch):
        monkeypatch.delenv("CATALOG_TEST_VALUE", raising=False)

        with pytest.raises(ValueError, match="needed for tests"):
            substitute_env_vars("${CATALOG_TEST_VALUE:?needed for tests}")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TEST_CATALOG_STORE_PATH", "/tmp/override.yml")
    monkeypatch.setenv("CATALOG_STORE_PATH", "db/before.yml")

    apply_environment_overrides("test")

    assert os.environ["CATALOG_STORE_PATH"] == "/tmp/override.yml"


class TestLoadTemplatedYaml:
    def write(self, tmp_path: Path, content: str) -> Path:
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    def test_loads_sections(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CATALOG_TEST_STORE", "data/products.yml")
        path = self.write(
            tmp_path,
            """
config:
  app:
    environment: test
    port: 9000
  logging:
    level: DEBUG
    format: plain
  store:
    path: ${CATALOG_TEST_STORE}
    require_existing: true
    lock_timeout_seconds: 2.5
""",
        )

        config = load_templated_yaml(path)

        assert config.app.environment == "test"
        assert config.app.port == 9000
        assert config.logging.format == "plain"
        assert config.store.file_path == Path("data/products.yml")
        assert config.store.require_existing is True
        assert config.store.lock_timeout_seconds == 2.5

    def test_missing_sections_use_defaults(self, tmp_path):
        config = load_templated_yaml(self.write(tmp_path, "config:\n  app:\n    port: 8123\n"))

        assert config.app.port == 8123
        assert config.store.path == "db/development.products.yml"
        assert config.store.lock_timeout_seconds is None

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError):
            load_templated_yaml(self.write(tmp_path, "config: [unterminated\n"))

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ValueError):
            load_templated_yaml(self.write(tmp_path, "- one\n- two\n"))

    def test_invalid_values(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_templated_yaml(self.write(tmp_path, "config:\n  logging:\n    format: xml\n"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_templated_yaml(tmp_path / "absent.yaml")

    def test_repository_config_file_loads(self):
        config = load_templated_yaml(Path(__file__).parents[4] / "config.yaml")

        assert config.store.path
        assert config.logging.format in ("json", "plain")


class TestPlaceholderEdgeCases:
    def test_empty_variable_uses_default(self, monkeypatch):
        monkeypatch.setenv("CATALOG_TEST_VALUE", "")

        assert substitute_env_vars("${CATALOG_TEST_VALUE:-fallback}") == "fallback"

    def test_reports_every_missing_variable(self, monkeypatch):
        monkeypatch.delenv("CATALOG_TEST_ONE", raising=False)
        monkeypatch.delenv("CATALOG_TEST_TWO", raising=False)

        with pytest.raises(ValueError) as exc_info:
            substitute_env_vars("a: ${CATALOG_TEST_ONE}\nb: ${CATALOG_TEST_TWO:?set me}\n")

        message = str(exc_info.value)
        assert "CATALOG_TEST_ONE not set" in message
        assert "CATALOG_TEST_TWO: set me" in message

    def test_text_without_placeholders_is_unchanged(self):
        assert substitute_env_vars("price: $5 {not a placeholder}") == "price: $5 {not a placeholder}"
