"""
Tests for runtime configuration loading.
"""

import textwrap

import pytest
from dioscript import RuntimeConfig, load_config, Interpreter, ModuleRegistry, RuntimeLimitError


def write(tmp_path, text, name="runtime.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestRuntimeConfig:
    """Dataclass defaults and validation."""

    def test_defaults(self):
        config = RuntimeConfig()
        assert config.to_dict() == {
            "max_iterations": 100_000,
            "max_depth": 200,
            "max_parse_depth": 200,
        }

    @pytest.mark.parametrize("value", [0, -1, 1.5, True, "10"])
    def test_rejects_invalid_values(self, value):
        with pytest.raises(ValueError):
            RuntimeConfig(max_iterations=value)

    def test_from_mapping(self):
        config = RuntimeConfig.from_mapping({"max_depth": 50})
        assert config.max_depth == 50
        assert config.max_iterations == 100_000

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError) as exc_info:
            RuntimeConfig.from_mapping({"max_depth": 5, "timeout": 1})
        assert "timeout" in str(exc_info.value)


class TestLoadConfig:
    """YAML loading."""

    def test_top_level_mapping(self, tmp_path):
        path = write(tmp_path, """
            max_iterations: 500
            max_depth: 40
        """)
        config = load_config(path)
        assert config.max_iterations == 500
        assert config.max_depth == 40
        assert config.max_parse_depth == 200

    def test_runtime_section(self, tmp_path):
        path = write(tmp_path, """
            runtime:
              max_parse_depth: 64
        """)
        assert load_config(str(path)).max_parse_depth == 64

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(write(tmp_path, "")) == RuntimeConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_non_mapping(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write(tmp_path, "- 1\n- 2\n"))

    def test_bad_runtime_section(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write(tmp_path, "runtime: 3\n"))

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write(tmp_path, "max_steps: 3\n"))

    def test_loaded_limits_apply(self, tmp_path):
        config = load_config(write(tmp_path, "max_iterations: 2\n"))
        interpreter = Interpreter(ModuleRegistry.with_stdlib(), config)
        with pytest.raises(RuntimeLimitError):
            interpreter.evaluate("for @i in [1, 2, 3] { @i }")
