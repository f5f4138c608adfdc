"""
Tests for configuration loading and validation.
"""

import pytest

from maskstream.config.loader import Config, load_config
from maskstream.config.resolver import resolve_config
from maskstream.exceptions import ConfigurationError

BASE_CONFIG = """
fields: "id:No:none,card:Yes:cc"
protection:
  identity: svc-ingest
  shared_secret: ${MASKSTREAM_TEST_SECRET}
destination:
  type: filesystem
  config:
    root_path: /data/{env}
transfer:
  max_concurrent_files: 2
"""


@pytest.fixture
def project(tmp_path):
    (tmp_path / "config.yaml").write_text(BASE_CONFIG)
    return tmp_path


class TestLoadConfig:
    def test_loads_from_directory(self, project):
        config = load_config(project)
        assert config.get("fields") == "id:No:none,card:Yes:cc"
        assert config.path == project / "config.yaml"

    def test_loads_from_file_path(self, project):
        config = load_config(project / "config.yaml")
        assert config.get("transfer.max_concurrent_files") == 2

    def test_env_var_substitution(self, project, monkeypatch):
        monkeypatch.setenv("MASKSTREAM_TEST_SECRET", "hunter2")
        assert load_config(project).get("protection.shared_secret") == "hunter2"

    def test_unset_env_var_is_left_as_is(self, project, monkeypatch):
        monkeypatch.delenv("MASKSTREAM_TEST_SECRET", raising=False)
        assert load_config(project).get("protection.shared_secret") == "${MASKSTREAM_TEST_SECRET}"

    def test_env_placeholder(self, project):
        assert load_config(project, env="prod").get("destination.config.root_path") == "/data/prod"
        assert load_config(project).get("destination.config.root_path") == "/data/dev"

    def test_env_overlay_is_merged(self, project):
        (project / "config.prod.yaml").write_text("transfer:\n  fail_fast: true\n")
        config = load_config(project, env="prod")
        assert config.get("transfer.fail_fast") is True
        assert config.get("transfer.max_concurrent_files") == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("fields: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error parsing config.yaml"):
            load_config(tmp_path)

    def test_non_mapping_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(tmp_path)


class TestConfig:
    def test_dotted_get_and_default(self):
        config = Config({"a": {"b": {"c": 1}}})
        assert config.get("a.b.c") == 1
        assert config.get("a.x", "dflt") == "dflt"
        assert config.get("a.b.c.d", "dflt") == "dflt"

    def test_item_access(self):
        config = Config({"a": {"b": 1}})
        assert config["a.b"] == 1
        with pytest.raises(KeyError):
            config["missing"]

    def test_contains_and_iter(self):
        config = Config({"a": {"b": None}})
        assert "a.b" in config
        assert "a.c" not in config
        assert list(config) == ["a"]

    def test_validate_ok(self):
        Config({"fields": "a:No:x", "destination": {"type": "filesystem"}}).validate()

    def test_validate_reports_every_problem(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Config({"transfer": "fast"}).validate()
        message = str(exc_info.value)
        assert "'fields' is required" in message
        assert "'transfer' must be a mapping" in message
        assert "'destination' is required" in message


class TestResolveConfig:
    def test_nested_lists(self, monkeypatch):
        monkeypatch.setenv("MASKSTREAM_BUCKET", "anon")
        resolved = resolve_config({"a": ["${MASKSTREAM_BUCKET}", {"b": "{env}-x"}], "n": 3}, "staging")
        assert resolved == {"a": ["anon", {"b": "staging-x"}], "n": 3}

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("MASKSTREAM_UNSET", raising=False)
        assert resolve_config({"k": "${MASKSTREAM_UNSET:-fallback}"}) == {"k": "fallback"}

    def test_environment_beats_default(self, monkeypatch):
        monkeypatch.setenv("MASKSTREAM_SET", "real")
        assert resolve_config({"k": "${MASKSTREAM_SET:-fallback}"}) == {"k": "real"}

    def test_unset_reference_left_as_is(self, monkeypatch):
        monkeypatch.delenv("MASKSTREAM_UNSET", raising=False)
        assert resolve_config({"k": "${MASKSTREAM_UNSET}"}) == {"k": "${MASKSTREAM_UNSET}"}

    def test_strict_reports_every_unset_variable(self, monkeypatch):
        monkeypatch.delenv("MASKSTREAM_A", raising=False)
        monkeypatch.delenv("MASKSTREAM_B", raising=False)
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_config({"protection": {"secret": "${MASKSTREAM_A}"}, "l": ["${MASKSTREAM_B}"]}, strict=True)
        assert exc_info.value.details["missing"] == ["MASKSTREAM_A (protection.secret)", "MASKSTREAM_B (l[0])"]

    def test_strict_load_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MASKSTREAM_TEST_SECRET", raising=False)
        (tmp_path / "config.yaml").write_text(BASE_CONFIG)
        with pytest.raises(ConfigurationError, match="MASKSTREAM_TEST_SECRET"):
            load_config(tmp_path, strict_env=True)
