"""Tests for the shared tool front-end (run_tool and friends)."""

import dataclasses
import signal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from media_toolbelt.config import AppConfig
from media_toolbelt.errors import InputNotFound, InterruptedBySignal
from media_toolbelt.frontend import (
    InvocationSpec,
    Reporter,
    derive_output,
    render_help,
    render_usage,
    resolve_inputs,
    run_tool,
)
from media_toolbelt.options import InputKind, PositionalSpec
from media_toolbelt.process import CleanupStack
from media_toolbelt.tools import get_tool

TRIMVID = get_tool("trimvid")
CONVERTVID = get_tool("convertvid")


class TestHelp:
    """Help short-circuits everything else."""

    @pytest.mark.parametrize(
        "argv",
        [["--help"], ["-h"], ["-q", "--help"], ["--bogus", "-h"], ["-h", "missing.mp4", "notatime"]],
    )
    def test_help_exits_zero(self, argv, app_config, capsys):
        """Test help is printed with exit 0 regardless of other arguments."""
        with patch("subprocess.run") as mock_run, patch("shutil.which") as mock_which:
            code = run_tool(TRIMVID, argv, app_config)

        assert code == 0
        out = capsys.readouterr().out
        assert "trimvid 0.1.0" in out
        assert "Usage: trimvid" in out
        assert "--output=FILE" in out
        mock_run.assert_not_called()
        mock_which.assert_not_called()

    def test_help_lists_examples(self, app_config, capsys):
        """Test help includes the tool's examples."""
        run_tool(TRIMVID, ["--help"], app_config)
        assert "$ trimvid clip.mp4 00:01:00" in capsys.readouterr().out

    def test_help_after_positional_is_not_help(self, app_config, sample_video, mock_subprocess, available_tools):
        """Test --help after the first positional is treated as an argument."""
        code = run_tool(TRIMVID, [str(sample_video), "--help"], app_config)
        assert code == 1


class TestUnknownOptions:
    """Unknown options fail before anything runs."""

    @pytest.mark.parametrize("flag,expected", [("--bogus", "Unknown option --bogus"), ("-z", "Unknown option -z")])
    def test_unknown_option(self, flag, expected, app_config, sample_video, capsys):
        """Test unknown options exit 1 and name the flag."""
        with patch("subprocess.run") as mock_run, patch("shutil.which") as mock_which:
            code = run_tool(TRIMVID, [flag, str(sample_video), "10"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert f"trimvid: {expected}" in err
        assert "Usage: trimvid" in err
        mock_run.assert_not_called()
        mock_which.assert_not_called()


class TestMissingArguments:
    """Missing positionals fail before the dependency check."""

    def test_missing_filename(self, app_config, capsys):
        """Test no arguments at all."""
        with patch("subprocess.run") as mock_run, patch("shutil.which") as mock_which:
            code = run_tool(TRIMVID, [], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "Filename must be provided." in err
        assert "Usage:" in err
        mock_which.assert_not_called()
        mock_run.assert_not_called()

    def test_missing_start(self, app_config, sample_video, capsys):
        """Test the tool-specific message for the second positional."""
        with patch("shutil.which") as mock_which:
            code = run_tool(TRIMVID, [str(sample_video)], app_config)

        assert code == 1
        assert "Start timecode must be provided." in capsys.readouterr().err
        mock_which.assert_not_called()


class TestDependencies:
    """Missing executables fail before any external process runs."""

    def test_missing_dependency(self, app_config, sample_video, mock_subprocess, available_tools, capsys):
        """Test a missing ffmpeg aborts even though the input exists."""
        available_tools.discard("ffmpeg")

        code = run_tool(TRIMVID, [str(sample_video), "00:01:00"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "ffmpeg must be installed <https://ffmpeg.org>. Aborting." in err
        mock_subprocess.assert_not_called()

    def test_dependency_checked_before_input(self, app_config, workdir, mock_subprocess, available_tools, capsys):
        """Test a missing dependency is reported ahead of a missing input."""
        available_tools.discard("ffprobe")

        code = run_tool(TRIMVID, ["nope.mp4", "5"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "ffprobe must be installed" in err
        assert "not found" not in err

    def test_config_override_used(self, sample_video, mock_subprocess, available_tools, commands, tmp_path):
        """Test the tools override in config replaces the PATH lookup."""
        custom = tmp_path / "ffmpeg-custom"
        custom.write_text("#!/bin/sh\n")
        config = AppConfig()
        config.tools["ffmpeg"] = custom

        code = run_tool(TRIMVID, [str(sample_video), "0", "5"], config)

        assert code == 0
        assert commands("ffmpeg-custom")[0][0] == str(custom)


class TestInputExists:
    """Missing inputs fail before any external process runs."""

    def test_input_not_found(self, app_config, workdir, mock_subprocess, available_tools, capsys):
        """Test a missing video is reported by name."""
        code = run_tool(TRIMVID, ["missing.mp4", "00:01:00"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "Video file 'missing.mp4' not found." in err
        assert "Usage:" not in err
        mock_subprocess.assert_not_called()

    def test_directory_is_not_a_file(self, app_config, workdir, mock_subprocess, available_tools):
        """Test a directory does not satisfy a file input."""
        (workdir / "folder.mp4").mkdir()
        assert run_tool(TRIMVID, ["folder.mp4", "5"], app_config) == 1
        mock_subprocess.assert_not_called()


class TestTrimEndToEnd:
    """trimvid through the whole front-end."""

    def test_trim_to_probed_end(self, app_config, sample_video, mock_subprocess, available_tools, commands, capsys):
        """Test trimming from 00:01:00 with no end runs to the probed end of the clip."""
        code = run_tool(TRIMVID, ["clip.mp4", "00:01:00"], app_config)

        assert code == 0
        ffmpeg = commands("ffmpeg")
        assert len(ffmpeg) == 1
        cmd = ffmpeg[0]
        assert cmd[cmd.index("-ss") + 1] == "60"
        assert cmd[cmd.index("-t") + 1] == "60"
        assert cmd[cmd.index("-i") + 1] == "clip.mp4"
        assert cmd[-1] == "clip-trim.mp4"
        assert "Video trimmed. File: clip-trim.mp4" in capsys.readouterr().out

    def test_derived_name_keeps_extension(self, app_config, workdir, mock_subprocess, available_tools, commands):
        """Test clip.mov trims to clip-trim.mov."""
        (workdir / "clip.mov").write_bytes(b"mov")

        assert run_tool(TRIMVID, ["clip.mov", "0", "10"], app_config) == 0
        assert commands("ffmpeg")[0][-1] == "clip-trim.mov"

    def test_explicit_output(self, app_config, sample_video, mock_subprocess, available_tools, commands):
        """Test --output replaces the derived name."""
        assert run_tool(TRIMVID, ["--output=short.mp4", "clip.mp4", "0", "10"], app_config) == 0
        assert commands("ffmpeg")[0][-1] == "short.mp4"

    def test_output_may_not_overwrite_input(self, app_config, sample_video, mock_subprocess, available_tools, capsys):
        """Test an output equal to the input is refused."""
        code = run_tool(TRIMVID, ["-o", "clip.mp4", "clip.mp4", "0", "10"], app_config)

        assert code == 1
        assert "would overwrite the input" in capsys.readouterr().err
        assert not [c for c in mock_subprocess.call_args_list if "ffmpeg" in c.args[0][0]]

    def test_quiet_suppresses_status(
        self, app_config, sample_video, mock_subprocess, available_tools, commands, capsys
    ):
        """Test -q hides the success line and ffmpeg's progress stats."""
        assert run_tool(TRIMVID, ["-q", "clip.mp4", "0", "10"], app_config) == 0

        assert capsys.readouterr().out == ""
        assert "-nostats" in commands("ffmpeg")[0]

    def test_delegated_failure(self, app_config, sample_video, mock_subprocess, available_tools, capsys):
        """Test a non-zero ffmpeg exit becomes exit 1 with the tool's last stderr line."""
        mock_subprocess.side_effect = lambda cmd, **kwargs: MagicMock(
            returncode=1, stdout="", stderr="frame=0\nclip.mp4: Invalid data found\n"
        )

        code = run_tool(TRIMVID, ["-q", "clip.mp4", "0", "10"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "ffmpeg failed with exit status 1: clip.mp4: Invalid data found" in err
        assert mock_subprocess.call_count == 1


class TestBatchConvert:
    """convertvid by extension runs once per matching file."""

    @pytest.fixture
    def wmv_files(self, workdir):
        """Three .wmv files and one unrelated file."""
        for name in ("b.wmv", "a.wmv", "c.WMV", "notes.txt"):
            (workdir / name).write_bytes(b"data")
        return workdir

    def test_three_files(self, app_config, wmv_files, mock_subprocess, available_tools, commands, capsys):
        """Test three sequential invocations writing into converted/."""
        code = run_tool(CONVERTVID, ["wmv"], app_config)

        assert code == 0
        ffmpeg = commands("ffmpeg")
        assert len(ffmpeg) == 3
        assert [cmd[cmd.index("-i") + 1] for cmd in ffmpeg] == ["a.wmv", "b.wmv", "c.WMV"]
        assert [cmd[-1] for cmd in ffmpeg] == [
            str(Path("converted") / "a.mp4"),
            str(Path("converted") / "b.mp4"),
            str(Path("converted") / "c.mp4"),
        ]
        assert (wmv_files / "converted").is_dir()
        assert "Converted 3 files" in capsys.readouterr().out

    def test_failure_continues(self, app_config, wmv_files, mock_subprocess, available_tools, capsys):
        """Test one failed file does not stop the rest, and the run exits 1."""

        def fail_on_b(cmd, **kwargs):
            return MagicMock(returncode=1 if "b.wmv" in cmd else 0, stdout="", stderr="")

        mock_subprocess.side_effect = fail_on_b

        code = run_tool(CONVERTVID, [".wmv"], app_config)

        assert code == 1
        assert mock_subprocess.call_count == 3
        captured = capsys.readouterr()
        assert "b.wmv failed" in captured.err
        assert "1 of 3 files failed." in captured.err

    def test_no_matches(self, app_config, workdir, mock_subprocess, available_tools, capsys):
        """Test an extension with no files is an input-not-found error."""
        code = run_tool(CONVERTVID, ["mkv"], app_config)

        assert code == 1
        assert "No '*.mkv' files found" in capsys.readouterr().err
        mock_subprocess.assert_not_called()

    def test_single_file(self, app_config, sample_video, mock_subprocess, available_tools, commands):
        """Test a file argument converts just that file."""
        assert run_tool(CONVERTVID, ["--crf=30", "clip.mp4"], app_config) == 0

        (cmd,) = commands("ffmpeg")
        assert cmd[cmd.index("-crf") + 1] == "30"
        assert cmd[-1] == str(Path("converted") / "clip.mp4")


class TestInterruption:
    """Signals become a clean exit with cleanup."""

    def test_interrupt_during_run(self, app_config, workdir, mock_subprocess, available_tools, capsys):
        """Test SIGINT during ffmpeg exits 1 and removes the temporary concat list."""
        (workdir / "a.mp4").write_bytes(b"a")
        (workdir / "b.mp4").write_bytes(b"b")
        seen = {}

        def interrupted(cmd, **kwargs):
            seen["listing"] = Path(cmd[cmd.index("-i") + 1])
            assert seen["listing"].exists()
            raise InterruptedBySignal(signal.SIGINT)

        mock_subprocess.side_effect = interrupted

        code = run_tool(get_tool("joinvid"), ["a.mp4", "b.mp4"], app_config)

        assert code == 1
        assert "Program interrupted by user." in capsys.readouterr().err
        assert not seen["listing"].exists()
        assert (workdir / "a.mp4").exists()
        assert (workdir / "b.mp4").exists()

    def test_partial_output_removed(self, app_config, sample_video, mock_subprocess, available_tools, workdir):
        """Test an output written before a SIGTERM is removed."""

        def half_written(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"partial")
            raise InterruptedBySignal(signal.SIGTERM)

        mock_subprocess.side_effect = half_written

        assert run_tool(get_tool("stripvid"), ["clip.mp4"], app_config) == 1
        assert not (workdir / "clip-stripped.mp4").exists()
        assert (workdir / "clip.mp4").exists()

    def test_second_interrupt_during_cleanup(
        self, app_config, sample_video, mock_subprocess, available_tools, workdir, capsys
    ):
        """Test another Ctrl-C while partial outputs are removed does not stop the removal."""

        def half_written(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"partial")
            raise InterruptedBySignal(signal.SIGINT)

        mock_subprocess.side_effect = half_written
        close = CleanupStack.close
        seen = {}

        def impatient_close(self, success):
            seen["handler"] = signal.getsignal(signal.SIGINT)
            signal.raise_signal(signal.SIGINT)
            close(self, success)

        with patch.object(CleanupStack, "close", impatient_close):
            code = run_tool(get_tool("stripvid"), ["clip.mp4"], app_config)

        assert code == 1
        assert seen["handler"] is signal.SIG_IGN
        assert "Program interrupted by user." in capsys.readouterr().err
        assert not (workdir / "clip-stripped.mp4").exists()

    def test_existing_output_not_removed(
        self, app_config, sample_video, mock_subprocess, available_tools, workdir, monkeypatch
    ):
        """Test a pre-existing file at the output path survives a failure."""
        existing = workdir / "clip-stripped.mp4"
        existing.write_bytes(b"keep me")
        monkeypatch.setattr(Reporter, "confirm", lambda self, question, closed="": True)
        mock_subprocess.side_effect = lambda cmd, **kwargs: MagicMock(returncode=1, stdout="", stderr="")

        assert run_tool(get_tool("stripvid"), ["clip.mp4"], app_config) == 1
        assert existing.read_bytes() == b"keep me"

    def test_handlers_restored(self, app_config, sample_video, mock_subprocess, available_tools):
        """Test the previous SIGINT handler is back after a run."""
        before = signal.getsignal(signal.SIGINT)
        run_tool(TRIMVID, ["clip.mp4", "0", "5"], app_config)
        assert signal.getsignal(signal.SIGINT) is before


class TestUnexpectedErrors:
    """Errors outside the taxonomy still exit 1 without a traceback."""

    def test_unexpected_exception(self, app_config, sample_video, mock_subprocess, available_tools, capsys):
        """Test an OSError from subprocess is reported cleanly."""
        mock_subprocess.side_effect = OSError("exec format error")

        code = run_tool(get_tool("stripvid"), ["clip.mp4"], app_config)

        assert code == 1
        err = capsys.readouterr().err
        assert "Unexpected error: OSError: exec format error" in err
        assert "Traceback" not in err


class TestInvocationSpec:
    """InvocationSpec is immutable once built."""

    def test_frozen(self):
        """Test attributes cannot be reassigned."""
        spec = InvocationSpec(tool="trimvid", inputs=(Path("clip.mp4"),), params={"start": 60.0})
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.quiet = True

    def test_params_read_only(self):
        """Test params cannot be mutated, even via the original dict."""
        params = {"start": 60.0}
        spec = InvocationSpec(tool="trimvid", inputs=[Path("clip.mp4")], params=params)
        params["start"] = 0.0

        assert spec.params["start"] == 60.0
        with pytest.raises(TypeError):
            spec.params["start"] = 1.0

    def test_get_default(self):
        """Test get falls back when the value is None."""
        spec = InvocationSpec(tool="minvid", inputs=(), params={"crf": None})
        assert spec.get("crf", 28) == 28
        assert spec.input is None


class TestDeriveOutput:
    """Tests for the output naming convention."""

    @pytest.mark.parametrize(
        "source,kwargs,expected",
        [
            ("clip.mov", {"suffix": "-trim"}, "clip-trim.mov"),
            ("dir/clip.mp4", {"suffix": "-faded"}, "dir/clip-faded.mp4"),
            ("movie.avi", {"extension": ".mp4"}, "movie.mp4"),
            ("a.wmv", {"extension": ".mp4", "directory": Path("converted")}, "converted/a.mp4"),
            ("clip.MOV", {"suffix": "-min"}, "clip-min.MOV"),
        ],
    )
    def test_naming(self, source, kwargs, expected):
        """Test suffix, extension and directory substitution."""
        assert derive_output(Path(source), **kwargs) == Path(expected)


class TestResolveInputs:
    """Tests for input existence checks."""

    def test_directory_input(self, tmp_path):
        """Test a directory positional accepts a directory."""
        pos = PositionalSpec("directory", input_kind=InputKind.DIRECTORY, noun="Directory")
        inputs, from_pattern = resolve_inputs([pos], {"directory": str(tmp_path)})
        assert inputs == [tmp_path]
        assert from_pattern is False

    def test_directory_missing(self, tmp_path):
        """Test a missing directory names the noun."""
        pos = PositionalSpec("directory", input_kind=InputKind.DIRECTORY, noun="Directory")
        with pytest.raises(InputNotFound, match="Directory '.*nope' not found."):
            resolve_inputs([pos], {"directory": str(tmp_path / "nope")})

    def test_non_input_positionals_ignored(self):
        """Test plain value positionals are not checked on disk."""
        pos = PositionalSpec("distance")
        assert resolve_inputs([pos], {"distance": 20}) == ([], False)


class TestUsageRendering:
    """Tests for usage and help text."""

    def test_generated_usage(self):
        """Test usage is built from the option table."""
        usage = render_usage(TRIMVID)
        assert usage.startswith("Usage: trimvid [-q|--quiet] [-o|--output=<FILE>] FILE START [END]")
        assert usage.endswith("trimvid [-h|--help]")

    def test_custom_usage_lines(self):
        """Test tools with explicit usage lines keep them."""
        usage = render_usage(get_tool("modimg"))
        assert "modimg [-f|--full]" in usage
        assert "modimg [-o|--optimize]" in usage

    def test_help_lists_every_option(self):
        """Test every option appears in help."""
        text = render_help(get_tool("pdf2jpg")).plain
        for flag in ("--first=PAGE", "--last=PAGE", "--only=PAGE", "--res=DPI", "--quality=Q", "--im", "--quiet"):
            assert flag in text
