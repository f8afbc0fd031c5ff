"""
Screen captures from a video, optionally combined into an index sheet.

One capture is taken from the middle of the video. Several captures are
spread evenly from the start to just before the end. The index sheet puts
the second capture full width on top and the rest in a two-column grid
underneath (built with three ImageMagick montage calls).
"""

from collections.abc import Mapping
from pathlib import Path

from ..errors import DelegatedFailure, UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec, format_seconds
from ..probe import get_video_width
from .common import ffmpeg_base, require_duration

# Keep the last capture clear of the final frame, which some containers can't seek to
END_MARGIN = 0.1


def capture_times(duration: float, count: int) -> list[float]:
    """Seek positions for ``count`` captures of a video ``duration`` seconds long."""
    if count == 1:
        return [duration / 2]
    step = (duration - END_MARGIN) / (count - 1)
    return [idx * step for idx in range(count)]


def capture_name(source: Path, index: int) -> Path:
    """clip.mp4, 3 -> clip_03.jpg"""
    return source.parent / f"{source.stem}_{index:02d}.jpg"


def _wants_index(values: Mapping[str, object]) -> bool:
    return bool(values["index"] or values["onlyindex"])


def _validate(values: Mapping[str, object]) -> None:
    if _wants_index(values) and values["count"] < 2:
        raise UsageError("Creation of index requires at least two screencaps.")


def _build_index(ctx: ToolContext, source: Path, captures: list[Path]) -> Path:
    width = get_video_width(ctx.exe("ffprobe"), source)
    if width <= 0:
        raise DelegatedFailure("ffprobe", 1, f"could not determine the width of '{source}'")

    work = ctx.cleanup.temp_dir()
    top = work / f"{source.stem}_top.jpg"
    grid = work / f"{source.stem}_caps.jpg"
    index = ctx.output_path(source, extension=".jpg", explicit=False)

    header, rest = captures[1], [cap for pos, cap in enumerate(captures) if pos != 1]

    ctx.reporter.status("Building index...")
    ctx.run("montage", "-quiet", header, "-tile", "1x1", "-border", "2", "-geometry", f"{width}x+0+0", top)
    ctx.run("montage", "-quiet", *rest, "-tile", "2x", "-border", "2", "-geometry", f"{width // 2}x+0+0", grid)
    ctx.run("montage", "-quiet", top, grid, "-tile", "1x2", "-geometry", "+0+0", index)
    return index


def _capture(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    count = ctx.params["count"]
    only_index = bool(ctx.params["onlyindex"])

    duration = require_duration(ctx, source)
    ctx.reporter.status(f"Video is {format_seconds(duration)} seconds long.")

    times = capture_times(duration, count)
    if count == 1:
        targets = [ctx.output_path(source, extension=".jpg", explicit=False)]
    else:
        targets = [ctx.claim_output(capture_name(source, idx)) for idx in range(1, count + 1)]
        ctx.reporter.status(f"Capturing frame every {format_seconds(times[1])} seconds...")

    for seek, target in zip(times, targets):
        ctx.reporter.status(f"Capturing screencap at {format_seconds(seek)}s...")
        cmd = [*ffmpeg_base(ctx, target), "-ss", format_seconds(seek), "-i", source]
        ctx.run("ffmpeg", *cmd, "-vframes", "1", "-f", "image2", target)

    if not _wants_index(ctx.params):
        return ToolOutcome(f"Finished! {count} capture(s) written.", targets)

    index = _build_index(ctx, source, targets)
    if only_index:
        for target in targets:
            ctx.cleanup.temporary(target)
        return ToolOutcome(f"Finished! Index written to {index}", [index])
    return ToolOutcome(f"Finished! {count} captures and index {index} written.", [*targets, index])


VIDCAP = ToolSpec(
    name="vidcap",
    summary="Capture still frames from a video, optionally as an index sheet.",
    description=(
        "With COUNT=1 (the default) one frame is taken from the middle of the video.\n"
        "Larger counts spread captures evenly across the whole video."
    ),
    execute=_capture,
    options=[
        OptionSpec("index", "x", "Also build an index sheet from the captures (needs COUNT >= 2)."),
        OptionSpec("onlyindex", "o", "Build the index sheet and remove the individual captures."),
    ],
    positionals=[
        PositionalSpec(
            "filename",
            "Video to capture from.",
            metavar="FILE",
            input_kind=InputKind.FILE,
            noun="Video file",
        ),
        PositionalSpec(
            "count",
            "Number of captures.",
            kind=OptionKind.INT,
            required=False,
            default=1,
            minimum=1,
        ),
    ],
    requires=("ffmpeg", "ffprobe"),
    requires_when=lambda values: ("montage",) if _wants_index(values) else (),
    validate=_validate,
    examples=[
        ("One capture from the middle:", "vidcap clip.mp4"),
        ("Nine captures and an index sheet:", "vidcap --index clip.mp4 9"),
    ],
)
