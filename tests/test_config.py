"""Tests for configuration loading."""

from pathlib import Path

from media_toolbelt.config import (
    AppConfig,
    find_config_file,
    load_config,
)


class TestAppConfig:
    """Tests for AppConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = AppConfig()

        assert config.tools == {}
        assert config.video.convert_crf == 28
        assert config.video.avi_crf == 23
        assert config.video.small_bitrate_kb == 2600
        assert config.video.convert_dir == "converted"
        assert config.images.pdf_resolution == 72
        assert config.images.pdf_quality == 90
        assert config.display.color is True
        assert config.logging.level == "WARNING"

    def test_log_level_from_environment(self, monkeypatch):
        """Test MTB_LOG_LEVEL sets the default log level."""
        monkeypatch.setenv("MTB_LOG_LEVEL", "DEBUG")
        assert AppConfig().logging.level == "DEBUG"

    def test_from_yaml_missing_file(self, tmp_path):
        """Test loading from non-existent file returns defaults."""
        config = AppConfig.from_yaml(tmp_path / "nonexistent.yaml")

        assert config.video.minify_crf == 28

    def test_from_yaml_valid_file(self, tmp_path):
        """Test loading from valid YAML file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
tools:
  ffmpeg: /opt/ffmpeg/bin/ffmpeg
  vips: ~/bin/vips

video:
  minify_crf: 30
  small_bitrate_kb: 1800

images:
  pdf_quality: 75

display:
  color: false
""")
        config = AppConfig.from_yaml(config_file)

        assert config.tools["ffmpeg"] == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.tools["vips"] == Path.home() / "bin" / "vips"
        assert config.video.minify_crf == 30
        assert config.video.small_bitrate_kb == 1800
        assert config.images.pdf_quality == 75
        assert config.display.color is False

    def test_from_yaml_partial_config(self, tmp_path):
        """Test loading partial config preserves defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
video:
  convert_crf: 24
""")
        config = AppConfig.from_yaml(config_file)

        # Changed value
        assert config.video.convert_crf == 24
        # Default values preserved
        assert config.video.minify_crf == 28
        assert config.images.pdf_resolution == 72

    def test_unknown_keys_ignored(self, tmp_path):
        """Test unknown sections and keys do not break loading."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
paths:
  source_base: /somewhere
video:
  bogus: 1
  avi_crf: 20
""")
        config = AppConfig.from_yaml(config_file)

        assert config.video.avi_crf == 20
        assert not hasattr(config.video, "bogus")

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file gives defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert AppConfig.from_yaml(config_file).video.convert_crf == 28

    def test_to_dict(self):
        """Test conversion to a plain dictionary."""
        config = AppConfig()
        config.tools["ffmpeg"] = Path("/opt/ffmpeg")

        data = config.to_dict()

        assert data["tools"] == {"ffmpeg": "/opt/ffmpeg"}
        assert data["video"]["convert_crf"] == 28
        assert data["display"] == {"color": True}


class TestFindConfigFile:
    """Tests for the config search order."""

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        """Test an explicit path is used even when MTB_CONFIG is set."""
        monkeypatch.setenv("MTB_CONFIG", str(tmp_path / "env.yaml"))
        explicit = tmp_path / "explicit.yaml"

        assert find_config_file(explicit) == explicit

    def test_environment_variable(self, tmp_path, monkeypatch):
        """Test MTB_CONFIG is used when no path is given."""
        monkeypatch.setenv("MTB_CONFIG", str(tmp_path / "env.yaml"))

        assert find_config_file() == tmp_path / "env.yaml"

    def test_config_dir(self, tmp_path, monkeypatch):
        """Test config.yaml in MTB_CONFIG_DIR is found."""
        config_dir = tmp_path / "conf"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("video: {}\n")
        monkeypatch.setenv("MTB_CONFIG_DIR", str(config_dir))

        assert find_config_file() == config_dir / "config.yaml"

    def test_xdg_config_home(self, tmp_path, monkeypatch):
        """Test XDG_CONFIG_HOME is searched when MTB_CONFIG_DIR is unset."""
        monkeypatch.delenv("MTB_CONFIG_DIR")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        (tmp_path / "media-toolbelt").mkdir()
        (tmp_path / "media-toolbelt" / "config.yaml").write_text("video: {}\n")

        assert find_config_file() == tmp_path / "media-toolbelt" / "config.yaml"

    def test_working_directory(self, workdir):
        """Test ./mtb.yaml is the last resort."""
        (workdir / "mtb.yaml").write_text("video: {}\n")

        assert find_config_file().resolve() == (workdir / "mtb.yaml").resolve()

    def test_nothing_found(self, workdir):
        """Test None when no candidate exists."""
        assert find_config_file() is None


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, workdir):
        """Test defaults when nothing is configured."""
        assert load_config().video.convert_crf == 28

    def test_loads_explicit_file(self, tmp_path):
        """Test an explicit file is loaded."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("video:\n  avi_crf: 19\n")

        assert load_config(config_file).video.avi_crf == 19
