"""
Read-only queries against media files and tool versions.

These helpers run ffprobe, pdfinfo or vips with captured output and parse
the answer. A failed probe returns a neutral value (0.0, 0, None) rather
than raising; callers decide whether the missing value is fatal.
"""

import logging
import re
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 30


def _probe(cmd: list[str]) -> str | None:
    logger.debug("Probing: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=PROBE_TIMEOUT)
    except (subprocess.TimeoutExpired, OSError) as exc:
        logger.debug("Probe failed: %s", exc)
        return None
    if result.returncode != 0:
        logger.debug("Probe exited with %s: %s", result.returncode, result.stderr)
        return None
    return result.stdout


def get_video_duration(ffprobe: Path | str, video_path: Path) -> float:
    """
    Get video duration in seconds using ffprobe.

    Args:
        ffprobe: Path to the ffprobe executable
        video_path: Path to video file

    Returns:
        Duration in seconds, or 0.0 if it cannot be determined
    """
    output = _probe(
        [
            str(ffprobe),
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(video_path),
        ]
    )
    try:
        return float(output.strip()) if output else 0.0
    except ValueError:
        return 0.0


def get_video_width(ffprobe: Path | str, video_path: Path) -> int:
    """Get the width in pixels of the first video stream, or 0 if unknown."""
    output = _probe(
        [
            str(ffprobe),
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width",
            "-of",
            "csv=s=x:p=0",
            str(video_path),
        ]
    )
    try:
        return int(output.strip().split("x")[0]) if output else 0
    except ValueError:
        return 0


def get_pdf_page_count(pdfinfo: Path | str, pdf_path: Path) -> int:
    """Get the number of pages in a PDF, or 0 if unknown."""
    output = _probe([str(pdfinfo), str(pdf_path)])
    if not output:
        return 0
    match = re.search(r"^Pages:\s*(\d+)", output, re.MULTILINE)
    return int(match.group(1)) if match else 0


def get_vips_version(vips: Path | str) -> tuple[int, int] | None:
    """Get (major, minor) from ``vips --version``, or None if unknown."""
    output = _probe([str(vips), "--version"])
    if not output:
        return None
    match = re.search(r"\b(\d+)\.(\d+)\.(\d+)\b", output)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))
