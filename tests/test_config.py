"""Tests for imitune/config: YAML loading, validation and atomic save."""

import pytest

from imitune.config.config_loader import ConfigLoader
from imitune.config.validators import ImituneConfig, validate_config
from imitune.utils.exceptions import ConfigurationError

CONFIG_YAML = """\
audio:
  silence_threshold: 0.02
  max_recording_duration: 8.0
preprocessing:
  target_sample_rate: 16000
api:
  timeout: 5.0
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(CONFIG_YAML)
    return path


@pytest.fixture
def loader(config_file, tmp_path):
    return ConfigLoader(str(config_file), credentials_path=str(tmp_path / "creds.yml"))


class TestLoading:
    def test_values_and_defaults(self, loader):
        settings = loader.validated
        assert settings.audio.silence_threshold == 0.02
        assert settings.audio.max_recording_duration == 8.0
        assert settings.preprocessing.target_sample_rate == 16000
        assert settings.preprocessing.target_duration_seconds == 10.0
        assert settings.waveform.width == 600
        assert settings.embedding.input_name == "waveform"

    def test_dot_notation_get(self, loader):
        assert loader.get("api.timeout") == 5.0
        assert loader.get("api.search_url") is None
        assert loader.get("nope.missing", "fallback") == "fallback"

    def test_missing_file_uses_defaults(self, tmp_path):
        loader = ConfigLoader(
            str(tmp_path / "absent.yml"), credentials_path=str(tmp_path / "c.yml")
        )
        assert loader.get_all() == {}
        assert loader.validated.audio.silence_threshold == 0.01

    def test_env_var_selects_file(self, config_file, tmp_path, monkeypatch):
        monkeypatch.setenv("IMITUNE_CONFIG", str(config_file))
        loader = ConfigLoader(credentials_path=str(tmp_path / "c.yml"))
        assert loader.get("audio.silence_threshold") == 0.02

    def test_credentials_merged_per_section(self, config_file, tmp_path):
        creds = tmp_path / "creds.yml"
        creds.write_text("api:\n  search_url: https://search.example.com/api\n")

        loader = ConfigLoader(str(config_file), credentials_path=str(creds))

        assert loader.get("api.search_url") == "https://search.example.com/api"
        assert loader.get("api.timeout") == 5.0


class TestValidation:
    def test_invalid_value_raises_on_typed_access(self, loader):
        loader.set("audio.channels", 6)
        assert loader.get("audio.channels") == 6
        with pytest.raises(ConfigurationError, match="Channels"):
            loader.validated

    def test_fixing_value_recovers(self, loader):
        loader.set("preprocessing.resample_method", "cubic")
        loader.set("preprocessing.resample_method", "linear")
        assert loader.validated.preprocessing.resample_method == "linear"

    @pytest.mark.parametrize(
        "section, values",
        [
            ("audio", {"silence_threshold": 1.5}),
            ("audio", {"max_recording_duration": 0}),
            ("preprocessing", {"target_sample_rate": 0}),
            ("waveform", {"width": 0}),
            ("embedding", {"embedding_dim": -3}),
            ("api", {"timeout": 0}),
            ("logging", {"level": "LOUD"}),
        ],
    )
    def test_rejected_values(self, section, values):
        with pytest.raises(ValueError):
            validate_config({section: values})

    def test_log_level_normalized(self):
        assert validate_config({"logging": {"level": "debug"}}).logging.level == "DEBUG"

    def test_legacy_env_keys(self):
        settings = ImituneConfig(
            api_url="https://search.example.com", model_url="https://cdn/model.onnx"
        )
        assert settings.api.search_url == "https://search.example.com"
        assert settings.embedding.model_path == "https://cdn/model.onnx"


class TestSave:
    def test_save_roundtrip_with_backup(self, loader, config_file, tmp_path):
        loader.set("audio.silence_threshold", 0.05)
        loader.save()

        reloaded = ConfigLoader(
            str(config_file), credentials_path=str(tmp_path / "creds.yml")
        )
        assert reloaded.get("audio.silence_threshold") == 0.05
        assert (tmp_path / "config.yml.backup").exists()

    def test_save_refuses_invalid_config(self, loader, config_file):
        loader.set("audio.channels", 9)
        with pytest.raises(ConfigurationError):
            loader.save()
        assert "channels" not in config_file.read_text()

    def test_restore_from_backup(self, loader, config_file, tmp_path):
        loader.save()
        config_file.write_text("audio:\n  silence_threshold: 0.3\n")

        assert loader.restore_from_backup()
        assert loader.get("audio.silence_threshold") == 0.02
