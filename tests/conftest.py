"""Shared pytest fixtures for media-toolbelt tests."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from media_toolbelt.config import AppConfig

# Every executable the tools look up, except npx (so avif falls back to go-avif)
AVAILABLE_TOOLS = {
    "ffmpeg",
    "ffprobe",
    "convert",
    "mogrify",
    "montage",
    "exiftool",
    "trimage",
    "pdfinfo",
    "pdftoppm",
    "dwebp",
    "cwebp",
    "avif",
    "vips",
}

VIDEO_DURATION = "120.000000\n"
VIDEO_WIDTH = "1920\n"
PDF_INFO = "Title:          slides\nPages:          12\nEncrypted:      no\n"
VIPS_VERSION = "vips-8.14.1\n"


def fake_run(cmd, *args, **kwargs):
    """Stand-in for subprocess.run that answers probes with canned output."""
    name = Path(cmd[0]).name
    stdout = ""
    if name == "ffprobe":
        stdout = VIDEO_WIDTH if "stream=width" in cmd else VIDEO_DURATION
    elif name == "pdfinfo":
        stdout = PDF_INFO
    elif name == "vips":
        stdout = VIPS_VERSION
    return MagicMock(returncode=0, stdout=stdout, stderr="")


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep the user's own config and log level out of every test."""
    monkeypatch.setenv("MTB_CONFIG_DIR", str(tmp_path / "no-config"))
    monkeypatch.delenv("MTB_CONFIG", raising=False)
    monkeypatch.delenv("MTB_LOG_LEVEL", raising=False)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def app_config():
    """Default configuration."""
    return AppConfig()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Empty working directory that the test runs inside."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def sample_video(workdir):
    """A placeholder video file in the working directory."""
    video = workdir / "clip.mp4"
    video.write_bytes(b"fake mp4 data")
    return Path("clip.mp4")


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that call external tools."""
    with patch("subprocess.run", side_effect=fake_run) as mock_run:
        yield mock_run


@pytest.fixture
def available_tools():
    """
    Mock shutil.which to simulate installed tools.

    Yields the set of available names; tests can discard from it to
    simulate a missing tool.
    """
    available = set(AVAILABLE_TOOLS)

    def which_side_effect(tool):
        return f"/usr/bin/{tool}" if tool in available else None

    with patch("shutil.which", side_effect=which_side_effect):
        yield available


@pytest.fixture
def commands(mock_subprocess):
    """Return the command lines run so far for one executable name."""

    def _commands(name):
        return [call.args[0] for call in mock_subprocess.call_args_list if Path(call.args[0][0]).name == name]

    return _commands
