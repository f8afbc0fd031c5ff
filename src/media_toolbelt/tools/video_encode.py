"""
Video encoding tools - container changes, re-encodes and metadata stripping.
"""

import os
from collections.abc import Mapping
from pathlib import Path

from ..constants import MIN_SUFFIX, MINSM_SUFFIX, STRIP_SUFFIX
from ..errors import UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec
from .common import CRF_OPTION, OUTPUT_OPTION, VIDEO_FILE, ffmpeg_base

STRIP_METADATA = ["-map_metadata", "-1", "-map_chapters", "-1"]
FASTSTART = ["-movflags", "+faststart"]


def build_convert_command(ctx: ToolContext, source: Path, output: Path, crf: int) -> list[str]:
    """ffmpeg arguments for an x265 conversion to MP4."""
    return [*ffmpeg_base(ctx, output), "-i", str(source), "-vcodec", "libx265", "-crf", str(crf), str(output)]


def _convert(ctx: ToolContext) -> ToolOutcome:
    crf = ctx.invocation.get("crf", ctx.config.video.convert_crf)
    out_dir = Path(ctx.invocation.get("dir", ctx.config.video.convert_dir))
    out_dir.mkdir(parents=True, exist_ok=True)

    def convert_one(source: Path) -> Path:
        output = ctx.output_path(source, extension=".mp4", directory=out_dir, explicit=False)
        ctx.run("ffmpeg", *build_convert_command(ctx, source, output, crf))
        return output

    if ctx.invocation.from_pattern:
        result = ctx.batch(ctx.invocation.inputs, convert_one)
        return ToolOutcome(f"Converted {result.total} files into {out_dir}/", result.outputs)

    output = convert_one(ctx.invocation.input)
    return ToolOutcome(f"Converted video: {output}", [output])


CONVERTVID = ToolSpec(
    name="convertvid",
    summary="Convert a video, or every video with a given extension, to x265 MP4.",
    description=(
        "Given a file, converts that file. Given an extension such as 'wmv', converts every\n"
        "matching file in the current directory, one after another. Output goes to ./converted/."
    ),
    execute=_convert,
    options=[
        CRF_OPTION,
        OptionSpec("dir", "d", "Output directory.", kind=OptionKind.STRING, metavar="DIR"),
    ],
    positionals=[
        PositionalSpec(
            "target",
            "Video file, or an extension to convert every matching file.",
            metavar="FILE|EXT",
            missing_message="Filename or extension must be provided.",
            input_kind=InputKind.FILE_OR_EXTENSION,
            noun="Video file",
        ),
    ],
    requires=("ffmpeg",),
    examples=[
        ("Convert one file:", "convertvid holiday.avi"),
        ("Convert every .wmv file in the current directory:", "convertvid wmv"),
    ],
)


def _avi_to_mp4(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    video = ctx.config.video
    output = ctx.output_path(source, extension=".mp4")

    ctx.run(
        "ffmpeg",
        *ffmpeg_base(ctx, output),
        "-i",
        source,
        "-c:a",
        "aac",
        "-b:a",
        video.audio_bitrate,
        "-c:v",
        "libx265",
        "-x265-params",
        "log-level=error",
        "-crf",
        str(video.avi_crf),
        output,
    )
    return ToolOutcome(f"Converted video: {output}", [output])


AVIMP4 = ToolSpec(
    name="avimp4",
    summary="Re-encode an AVI (or any) video to x265 MP4 with AAC audio.",
    execute=_avi_to_mp4,
    options=[OUTPUT_OPTION],
    positionals=[VIDEO_FILE],
    requires=("ffmpeg",),
    examples=[("Convert an old AVI:", "avimp4 home-movie.avi")],
)


def _validate_copy(values: Mapping[str, object]) -> None:
    if Path(str(values["filename"])).suffix.lower() == ".mp4":
        raise UsageError(f"'{values['filename']}' is already in MP4 format.", show_usage=False)


def _copy_to_mp4(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    output = ctx.output_path(source, extension=".mp4")
    ctx.run("ffmpeg", *ffmpeg_base(ctx, output), "-i", source, "-c:v", "copy", "-c:a", "copy", output)
    return ToolOutcome(f"Copied into MP4 container: {output}", [output])


COPYVID = ToolSpec(
    name="copyvid",
    summary="Copy a video's streams into an MP4 container without re-encoding.",
    execute=_copy_to_mp4,
    options=[OUTPUT_OPTION],
    positionals=[VIDEO_FILE],
    requires=("ffmpeg",),
    validate=_validate_copy,
    examples=[("Rewrap an MKV:", "copyvid talk.mkv")],
)


def _minify(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    crf = ctx.invocation.get("crf", ctx.config.video.minify_crf)
    output = ctx.output_path(source, suffix=MIN_SUFFIX)

    cmd = [*ffmpeg_base(ctx, output), "-i", source, "-vcodec", "libx265", "-x265-params", "log-level=error"]
    cmd.extend(["-crf", str(crf), *STRIP_METADATA, *FASTSTART, output])
    ctx.run("ffmpeg", *cmd)
    return ToolOutcome(f"Minified video: {output}", [output])


MINVID = ToolSpec(
    name="minvid",
    summary="Shrink a video by re-encoding with x265, stripping metadata.",
    execute=_minify,
    options=[CRF_OPTION, OUTPUT_OPTION],
    positionals=[VIDEO_FILE],
    requires=("ffmpeg",),
    examples=[
        ("Shrink with the default quality:", "minvid clip.mp4"),
        ("Shrink harder:", "minvid --crf=32 clip.mp4"),
    ],
)


def _validate_small(values: Mapping[str, object]) -> None:
    if values["rate"] is not None and values["bitrate"] is not None:
        raise UsageError("Give the bitrate either as --rate or as an argument, not both.")


def _minify_small(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    video = ctx.config.video
    bitrate = ctx.invocation.get("rate") or ctx.invocation.get("bitrate") or video.small_bitrate_kb
    output = ctx.output_path(source, suffix=MINSM_SUFFIX)

    passlog = ctx.cleanup.temp_dir() / "ffmpeg2pass"
    common = [
        *ffmpeg_base(ctx, output),
        "-i",
        str(source),
        "-tune",
        "film",
        "-preset",
        "slower",
        *STRIP_METADATA,
        "-c:v",
        "libx264",
        "-b:v",
        f"{bitrate}k",
        "-passlogfile",
        str(passlog),
    ]

    ctx.reporter.status("Pass 1 of 2...")
    ctx.run("ffmpeg", *common, "-pass", "1", "-fps_mode", "cfr", "-an", "-f", "null", os.devnull)
    ctx.reporter.status("Pass 2 of 2...")
    ctx.run("ffmpeg", *common, "-pass", "2", "-c:a", "aac", "-b:a", video.audio_bitrate, *FASTSTART, output)
    return ToolOutcome(f"Minified video: {output}", [output])


MINSMVID = ToolSpec(
    name="minsmvid",
    summary="Shrink a video to a target bitrate with a two-pass x264 encode.",
    description="The bitrate is in kilobits per second (default 2600).",
    execute=_minify_small,
    options=[
        OptionSpec("rate", "r", "Target video bitrate in kb/s.", kind=OptionKind.INT, metavar="KB", minimum=1),
        OUTPUT_OPTION,
    ],
    positionals=[
        VIDEO_FILE,
        PositionalSpec("bitrate", "Target video bitrate in kb/s.", kind=OptionKind.INT, required=False, minimum=1),
    ],
    requires=("ffmpeg",),
    validate=_validate_small,
    examples=[
        ("Encode at 2600 kb/s:", "minsmvid clip.mp4"),
        ("Encode at 1200 kb/s:", "minsmvid --rate=1200 clip.mp4"),
    ],
)


def _strip(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    output = ctx.output_path(source, suffix=STRIP_SUFFIX)
    cmd = [*ffmpeg_base(ctx, output), "-i", source, "-c:v", "copy", "-c:a", "copy", *STRIP_METADATA, *FASTSTART, output]
    ctx.run("ffmpeg", *cmd)
    return ToolOutcome(f"Metadata stripped. File: {output}", [output])


STRIPVID = ToolSpec(
    name="stripvid",
    summary="Remove metadata and chapters from a video without re-encoding.",
    execute=_strip,
    options=[OUTPUT_OPTION],
    positionals=[VIDEO_FILE],
    requires=("ffmpeg",),
    examples=[("Strip a phone video before sharing:", "stripvid IMG_0042.mov")],
)
