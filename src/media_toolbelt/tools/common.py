"""Option definitions and ffmpeg helpers shared by several tools."""

from pathlib import Path

from ..errors import DelegatedFailure
from ..frontend import ToolContext
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec
from ..probe import get_video_duration

OUTPUT_OPTION = OptionSpec(
    "output",
    "o",
    "Write to this file instead of the derived name.",
    kind=OptionKind.STRING,
    metavar="FILE",
)

CRF_OPTION = OptionSpec(
    "crf",
    None,
    "Constant rate factor for libx265 (0-51, lower is better quality).",
    kind=OptionKind.INT,
    minimum=0,
    maximum=51,
)

VIDEO_FILE = PositionalSpec(
    "filename",
    "Video file to process.",
    metavar="FILE",
    input_kind=InputKind.FILE,
    noun="Video file",
)


def ffmpeg_base(ctx: ToolContext, output: Path) -> list[str]:
    """
    Leading ffmpeg arguments: errors only, progress stats unless quiet.

    ffmpeg never reads stdin and always overwrites, so an existing output is
    confirmed here instead of by ffmpeg's own prompt (hidden when quiet).
    """
    ctx.confirm_overwrite(output)
    return ["-nostdin", "-y", "-v", "error", "-nostats" if ctx.quiet else "-stats"]


def require_duration(ctx: ToolContext, video: Path) -> float:
    """
    Probe a video's length.

    Raises:
        DelegatedFailure: If ffprobe cannot report a duration
    """
    duration = get_video_duration(ctx.exe("ffprobe"), video)
    if duration <= 0:
        raise DelegatedFailure("ffprobe", 1, f"could not determine the length of '{video}'")
    return duration
