"""
Rewrite file and metadata dates so images sort by filename.

Some photo services only sort by date taken. Giving each image a creation
date one hour after the previous one (in filename order) makes date order
match name order. This IRREVERSIBLY changes the images' dates.
"""

import os
import re
import time
from collections.abc import Mapping
from pathlib import Path

from ..errors import UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec

_DATE = re.compile(r"^\d{4}:\d{2}:\d{2}$")
_TIME = re.compile(r"^\d{2}:\d{2}:\d{2}$")

DEFAULT_DATE = "2000:01:01"
DEFAULT_TIME = "00:00:00"


def _validate(values: Mapping[str, object]) -> None:
    if not _DATE.match(values["date"]):
        raise UsageError(f"Invalid date '{values['date']}': expected YYYY:MM:DD.")
    if not _TIME.match(values["time"]):
        raise UsageError(f"Invalid time '{values['time']}': expected HH:MM:SS.")


def touch_sequentially(directory: Path, now: float | None = None) -> list[Path]:
    """
    Set modification times one second apart in filename order.

    Returns:
        The files touched, in order
    """
    files = sorted(p for p in directory.iterdir() if p.is_file())
    base = (time.time() if now is None else now) - len(files)
    for idx, path in enumerate(files):
        stamp = base + idx
        os.utime(path, (stamp, stamp))
    return files


def exiftool_passes(directory: Path, start: str) -> list[list[str]]:
    """Arguments for the four exiftool runs, in order."""
    target = os.path.join(directory, ".")
    return [
        ["-overwrite_original", "-P", f"-alldates={start}", target],
        ["-fileorder", "FileName", "-overwrite_original", "-P", "-alldates+<${filesequence}0:0:0", target],
        ["-r", "-overwrite_original", "-P", "-XMP-exif:DateTimeDigitized<CreateDate", target],
        ["-r", "-overwrite_original", "-P", "-XMP-xmp:MetadataDate<CreateDate", target],
    ]


def _imagedate(ctx: ToolContext) -> ToolOutcome:
    directory = ctx.invocation.input

    if not ctx.params["yes"]:
        question = (
            "WARNING: This will overwrite file and metadata dates for any images it finds. Do you want to proceed?"
        )
        if not ctx.reporter.confirm(question):
            ctx.reporter.status("Operation canceled.")
            return ToolOutcome()

    ctx.reporter.status("Setting image dates...")
    files = touch_sequentially(directory)

    start = f"{ctx.params['date']} {ctx.params['time']}"
    for args in exiftool_passes(directory, start):
        ctx.run("exiftool", *args)

    return ToolOutcome(f"Done. Dates rewritten for {len(files)} file(s) in {directory}")


IMAGEDATE = ToolSpec(
    name="imagedate",
    summary="Rewrite image dates to increase in filename order.",
    description=(
        "Files get sequential modification times, and EXIF/XMP dates one hour apart\n"
        "starting from --date/--time, going alphabetically by filename."
    ),
    execute=_imagedate,
    options=[
        OptionSpec(
            "date",
            "d",
            f"Date of the first image (default {DEFAULT_DATE}).",
            kind=OptionKind.STRING,
            default=DEFAULT_DATE,
            metavar="YYYY:MM:DD",
        ),
        OptionSpec(
            "time",
            "t",
            f"Time of the first image (default {DEFAULT_TIME}).",
            kind=OptionKind.STRING,
            default=DEFAULT_TIME,
            metavar="HH:MM:SS",
        ),
        OptionSpec("yes", "y", "Do not ask for confirmation."),
    ],
    positionals=[
        PositionalSpec(
            "directory",
            "Directory of images.",
            metavar="DIR",
            missing_message="Directory must be provided.",
            input_kind=InputKind.DIRECTORY,
            noun="Directory",
        ),
    ],
    requires=("exiftool",),
    validate=_validate,
    examples=[
        ("Date the images in ./photos:", "imagedate ./photos"),
        ("Start from a given day, without asking:", "imagedate --yes --date=2021:06:01 ./photos"),
    ],
)
