"""
Tests for configuration loading and validation.
"""

import os

import pytest

from stagebuild.config.loader import CONFIG_FILENAME, Config, load_config, resolve_max_workers
from stagebuild.exceptions import ConfigurationError


@pytest.mark.unit
class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(project_path=tmp_path)
        assert config.get("build.configuration") == "Debug"
        assert config.get("build.command") == ["dotnet", "build"]
        assert config.get("discovery.track_external_references") is False

    def test_file_overrides_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            "build:\n  configuration: Release\n  max_workers: 2\n", encoding="utf-8"
        )

        config = load_config(project_path=tmp_path)

        assert config.get("build.configuration") == "Release"
        assert config.get("build.max_workers") == 2
        assert config.get("build.platform") == "AnyCPU"

    def test_explicit_path_must_exist(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_environment_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STAGEBUILD_TEST_OUT", "/tmp/out")
        path = tmp_path / "custom.yaml"
        path.write_text("build:\n  output_dir: ${STAGEBUILD_TEST_OUT}/bin\n", encoding="utf-8")

        config = load_config(path)

        assert config.get("build.output_dir") == "/tmp/out/bin"

    def test_string_command_is_split(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text('build:\n  command: "msbuild /nologo"\n', encoding="utf-8")
        assert load_config(path).get("build.command") == ["msbuild", "/nologo"]

    def test_build_timeout(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("build:\n  timeout: 90\n", encoding="utf-8")
        assert load_config(path).get("build.timeout") == 90
        assert load_config(project_path=tmp_path).get("build.timeout") is None

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("build:\n  command: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Error parsing custom.yaml"):
            load_config(path)

    @pytest.mark.parametrize(
        "content, message",
        [
            ("- just\n- a list\n", "must be a dictionary"),
            ("build: nope\n", "'build' must be a dictionary"),
            ("build:\n  unresolved: sometimes\n", "build.unresolved"),
            ("build:\n  max_workers: 0\n", "max_workers"),
            ("build:\n  command: []\n", "build.command"),
            ("build:\n  timeout: -5\n", "build.timeout"),
            ("build:\n  timeout: soon\n", "build.timeout"),
            ("discovery:\n  project_patterns: '*.csproj'\n", "project_patterns"),
        ],
    )
    def test_invalid_content(self, tmp_path, content, message):
        path = tmp_path / "custom.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError, match=message):
            load_config(path)


@pytest.mark.unit
class TestConfig:
    def test_dot_access_and_defaults(self):
        config = Config()
        assert config.get("build.output_dir") is None
        assert config.get("build.nothing", "fallback") == "fallback"
        assert config["build.platform"] == "AnyCPU"
        assert isinstance(config["build"], Config)

    def test_contains(self):
        config = Config()
        assert "build.command" in config
        assert "build.output_dir" in config
        assert "build.nothing" not in config

    def test_missing_key(self):
        with pytest.raises(KeyError):
            Config()["nothing"]


@pytest.mark.unit
class TestResolveMaxWorkers:
    def test_auto(self):
        assert resolve_max_workers("auto") == (os.cpu_count() or 1)
        assert resolve_max_workers(None) == (os.cpu_count() or 1)

    def test_numbers(self):
        assert resolve_max_workers(3) == 3
        assert resolve_max_workers("8") == 8

    @pytest.mark.parametrize("value", [0, -1, "many", True])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            resolve_max_workers(value)
