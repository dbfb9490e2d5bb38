"""
Tests for checker configuration loading.
"""

import json

import pytest

from typecore.config import CheckerConfig, ConfigError, load_config


class TestCheckerConfig:
    """Test configuration validation."""

    def test_defaults(self):
        """Defaults are a 64-bit word, one worker and no warnings."""
        config = CheckerConfig()
        assert config.to_dict() == {
            "word_bits": 64,
            "max_errors": 50,
            "workers": 1,
            "warn_unreachable": False,
        }

    @pytest.mark.parametrize("values", [
        {"word_bits": 16},
        {"max_errors": 0},
        {"workers": -2},
        {"workers": True},
        {"warn_unreachable": "yes"},
    ])
    def test_invalid_values(self, values):
        """Out-of-range or mistyped values are rejected."""
        with pytest.raises(ConfigError):
            CheckerConfig(**values)

    def test_unknown_keys(self):
        """Unknown keys are named in the error."""
        with pytest.raises(ConfigError, match="threads"):
            CheckerConfig.from_mapping({"threads": 4})

    def test_overrides_skip_none(self):
        """None leaves a value unchanged."""
        config = CheckerConfig(workers=4).with_overrides(workers=None, word_bits=32)
        assert config.workers == 4
        assert config.word_bits == 32


class TestLoadConfig:
    """Test reading configuration files."""

    def test_yaml_file(self, tmp_path):
        """YAML files are the default format."""
        path = tmp_path / "typecore.yaml"
        path.write_text("word_bits: 32\nworkers: 4\nwarn_unreachable: true\n")
        config = load_config(path)
        assert config == CheckerConfig(word_bits=32, workers=4, warn_unreachable=True)

    def test_json_file(self, tmp_path):
        """A .json suffix selects JSON."""
        path = tmp_path / "typecore.json"
        path.write_text(json.dumps({"max_errors": 5}))
        assert load_config(str(path)).max_errors == 5

    def test_empty_file(self, tmp_path):
        """An empty YAML file gives the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == CheckerConfig()

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        """Unparseable files raise ConfigError."""
        path = tmp_path / "broken.yaml"
        path.write_text("word_bits: [32\n")
        with pytest.raises(ConfigError, match="cannot parse"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        """The document must be a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)
