"""
Video editing tools - trim, fade, watermark and join.

All of these copy or filter streams with ffmpeg; none of them chooses an
encoder beyond ffmpeg's default for the output container.
"""

from collections.abc import Mapping

from ..constants import FADE_SUFFIX, JOINED_NAME, MARK_SUFFIX, TRIM_SUFFIX
from ..errors import UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec, format_seconds, parse_timecode
from ..probe import get_video_duration
from .common import OUTPUT_OPTION, VIDEO_FILE, ffmpeg_base, require_duration


def trim_duration(start: float, end: str | None) -> float | None:
    """
    Work out the ``-t`` duration for a trim.

    ``end`` containing a colon is a stop timecode; otherwise it is a length in
    seconds. No end means "to the end of the clip" (None).

    Raises:
        UsageError: If end is malformed or does not come after start
    """
    if end is None:
        return None

    if ":" in end:
        try:
            stop = parse_timecode(end)
        except ValueError:
            raise UsageError(f"Invalid end timecode '{end}'.") from None
        if stop <= start:
            raise UsageError("End timecode must be after the start timecode.")
        return stop - start

    try:
        duration = float(end)
    except ValueError:
        raise UsageError(f"Invalid end value '{end}': expected a timecode or a length in seconds.") from None
    if duration <= 0:
        raise UsageError("Trim length must be greater than zero.")
    return duration


def _validate_trim(values: Mapping[str, object]) -> None:
    trim_duration(values["start"], values["end"])


def _trim(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    start = ctx.params["start"]
    duration = trim_duration(start, ctx.params["end"])

    if duration is None:
        length = get_video_duration(ctx.exe("ffprobe"), source)
        if length > start:
            duration = length - start
        elif length > 0:
            raise UsageError(
                f"Start {format_seconds(start)}s is past the end of the video ({format_seconds(length)}s).",
                show_usage=False,
            )

    output = ctx.output_path(source, suffix=TRIM_SUFFIX)
    cmd = [*ffmpeg_base(ctx, output), "-ss", format_seconds(start), "-i", source]
    if duration is not None:
        cmd.extend(["-t", format_seconds(duration)])
    cmd.extend(["-c", "copy", "-map_metadata", "-1", "-map_chapters", "-1", output])

    ctx.run("ffmpeg", *cmd)
    return ToolOutcome(f"Video trimmed. File: {output}", [output])


TRIMVID = ToolSpec(
    name="trimvid",
    summary="Trim a video to a start point and an optional end, without re-encoding.",
    description=(
        "END may be a stop timecode (anything containing ':') or a length in seconds.\n"
        "Without END the clip runs to the end of the video. Metadata and chapters are removed."
    ),
    execute=_trim,
    options=[OUTPUT_OPTION],
    positionals=[
        VIDEO_FILE,
        PositionalSpec(
            "start",
            "Start timecode (HH:MM:SS, MM:SS or seconds).",
            kind=OptionKind.TIMECODE,
            missing_message="Start timecode must be provided.",
        ),
        PositionalSpec("end", "Stop timecode, or length in seconds.", required=False),
    ],
    requires=("ffmpeg", "ffprobe"),
    validate=_validate_trim,
    examples=[
        ("Keep everything from one minute in:", "trimvid clip.mp4 00:01:00"),
        ("Keep 00:01:00 to 00:02:30:", "trimvid clip.mp4 00:01:00 00:02:30"),
        ("Keep 45 seconds starting at 10s:", "trimvid clip.mp4 10 45"),
    ],
)


def _fade(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    length = require_duration(ctx, source)

    fade = ctx.params["time"]
    if fade is None:
        fade = ctx.reporter.ask_float(
            f"Video length is {format_seconds(length)} seconds. How long do you want each fade to last? (in seconds)"
        )
    if fade <= 0:
        raise UsageError("Fade length must be greater than zero.", show_usage=False)
    if fade > length:
        raise UsageError(
            f"Fade length {format_seconds(fade)}s is longer than the video ({format_seconds(length)}s).",
            show_usage=False,
        )

    d = format_seconds(fade)
    out_point = format_seconds(length - fade)
    output = ctx.output_path(source, suffix=FADE_SUFFIX)

    ctx.run(
        "ffmpeg",
        *ffmpeg_base(ctx, output),
        "-i",
        source,
        "-vf",
        f"fade=t=in:st=0:d={d},fade=t=out:st={out_point}:d={d}",
        "-af",
        f"afade=t=in:st=0:d={d},afade=t=out:st={out_point}:d={d}",
        output,
    )
    return ToolOutcome(f"Done. Video created at: {output}", [output])


FADEVID = ToolSpec(
    name="fadevid",
    summary="Fade a video (and its audio) in from black and out to black.",
    description="Asks for the fade length when --time is not given.",
    execute=_fade,
    options=[
        OptionSpec("time", "t", "Length of each fade, in seconds.", kind=OptionKind.FLOAT, metavar="SECONDS"),
        OUTPUT_OPTION,
    ],
    positionals=[VIDEO_FILE],
    requires=("ffmpeg", "ffprobe"),
    examples=[
        ("Fade in and out over two seconds:", "fadevid --time=2 clip.mp4"),
        ("Ask for the fade length:", "fadevid clip.mp4"),
    ],
)


def _watermark(ctx: ToolContext) -> ToolOutcome:
    source, watermark = ctx.invocation.inputs
    distance = ctx.params["distance"]
    output = ctx.output_path(source, suffix=MARK_SUFFIX)

    ctx.run(
        "ffmpeg",
        *ffmpeg_base(ctx, output),
        "-i",
        source,
        "-i",
        watermark,
        "-filter_complex",
        f"overlay=main_w-overlay_w-{distance}:main_h-overlay_h-{distance}",
        output,
    )
    return ToolOutcome(f"Watermarked video created at: {output}", [output])


MARKVID = ToolSpec(
    name="markvid",
    summary="Overlay a watermark image in the bottom-right corner of a video.",
    execute=_watermark,
    options=[OUTPUT_OPTION],
    positionals=[
        VIDEO_FILE,
        PositionalSpec(
            "watermark",
            "Image to overlay (PNG with transparency works best).",
            metavar="WATERMARK",
            missing_message="Watermark filename must be provided.",
            input_kind=InputKind.FILE,
            noun="Watermark file",
        ),
        PositionalSpec(
            "distance",
            "Distance in pixels from the right and bottom edges.",
            kind=OptionKind.INT,
            metavar="PIXELS",
            missing_message="Pixel distance must be provided.",
            minimum=0,
        ),
    ],
    requires=("ffmpeg",),
    examples=[("Place logo.png 20 pixels from the corner:", "markvid clip.mp4 logo.png 20")],
)


def _quote_concat_path(path) -> str:
    return "'" + str(path).replace("'", "'\\''") + "'"


def _join(ctx: ToolContext) -> ToolOutcome:
    sources = ctx.invocation.inputs
    output = ctx.claim_output(ctx.invocation.output or JOINED_NAME)

    listing = ctx.cleanup.temp_dir() / "concat.txt"
    listing.write_text("".join(f"file {_quote_concat_path(src.resolve())}\n" for src in sources))

    ctx.run("ffmpeg", *ffmpeg_base(ctx, output), "-f", "concat", "-safe", "0", "-i", listing, "-c", "copy", output)
    return ToolOutcome(f"Joined {len(sources)} videos into {output}", [output])


JOINVID = ToolSpec(
    name="joinvid",
    summary="Join videos end to end without re-encoding.",
    description="All inputs should share the same codecs and dimensions.",
    execute=_join,
    options=[OUTPUT_OPTION],
    positionals=[
        PositionalSpec(
            "filenames",
            "Videos to join, in order.",
            metavar="FILE",
            variadic=True,
            missing_message="Filename must be provided.",
            input_kind=InputKind.FILE,
            noun="Video file",
        ),
    ],
    requires=("ffmpeg",),
    examples=[("Join three parts:", "joinvid --output=whole.mp4 part1.mp4 part2.mp4 part3.mp4")],
)
