"""
External executable lookup.

Tools never hard-code executable paths: each logical dependency is resolved
from the config ``tools`` overrides first, then the system PATH.
"""

import logging
import shutil
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import DependencyMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """An external executable a tool may need."""

    name: str
    url: str
    executables: tuple[str, ...] = ()
    package: str = ""

    @property
    def candidates(self) -> tuple[str, ...]:
        return self.executables or (self.name,)


_FFMPEG_URL = "https://ffmpeg.org"
_IMAGEMAGICK_URL = "https://imagemagick.org"
_POPPLER_URL = "https://poppler.freedesktop.org"
_WEBP_URL = "https://developers.google.com/speed/webp/download"

KNOWN_DEPENDENCIES: dict[str, Dependency] = {
    dep.name: dep
    for dep in (
        Dependency("ffmpeg", _FFMPEG_URL, package="ffmpeg"),
        Dependency("ffprobe", _FFMPEG_URL, package="ffmpeg"),
        Dependency("convert", _IMAGEMAGICK_URL, ("convert", "magick"), package="imagemagick"),
        Dependency("mogrify", _IMAGEMAGICK_URL, package="imagemagick"),
        Dependency("montage", _IMAGEMAGICK_URL, package="imagemagick"),
        Dependency("exiftool", "https://exiftool.org", package="libimage-exiftool-perl"),
        Dependency("trimage", "https://trimage.org", package="trimage"),
        Dependency("pdfinfo", _POPPLER_URL, package="poppler-utils"),
        Dependency("pdftoppm", _POPPLER_URL, package="poppler-utils"),
        Dependency("dwebp", _WEBP_URL, package="webp"),
        Dependency("cwebp", _WEBP_URL, package="webp"),
        Dependency("avif", "https://github.com/lovell/avif-cli"),
        Dependency("npx", "https://nodejs.org", package="npm"),
        Dependency("vips", "https://github.com/libvips/libvips/releases", package="libvips-tools"),
    )
}


def get_dependency(name: str) -> Dependency:
    """Look up a known dependency, or describe an unknown one by name only."""
    return KNOWN_DEPENDENCIES.get(name) or Dependency(name, "")


def resolve_executable(name: str, overrides: Mapping[str, Path] | None = None) -> Path | None:
    """
    Find an executable for a logical dependency name.

    Search order:
    1. Config override (tools.<name>), used only if the file exists
    2. System PATH, trying each alternative executable name

    Returns:
        Path to the executable, or None if not found
    """
    if overrides and name in overrides:
        override = Path(overrides[name])
        if override.exists():
            return override
        logger.warning("Configured path for %s does not exist: %s", name, override)

    for executable in get_dependency(name).candidates:
        found = shutil.which(executable)
        if found:
            return Path(found)

    return None


class DependencyCheck(Mapping):
    """Resolved executables for one run, keyed by logical name."""

    def __init__(self, resolved: Mapping[str, Path] | None = None, skipped: Iterable[str] = ()):
        self._resolved = dict(resolved or {})
        self.skipped = tuple(skipped)

    def __getitem__(self, name: str) -> Path:
        return self._resolved[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resolved)

    def __len__(self) -> int:
        return len(self._resolved)

    def __repr__(self) -> str:
        return f"DependencyCheck({self._resolved!r}, skipped={self.skipped!r})"


def check_dependencies(
    required: Iterable[str],
    optional: Iterable[str] = (),
    overrides: Mapping[str, Path] | None = None,
) -> DependencyCheck:
    """
    Resolve every dependency a run needs.

    Args:
        required: Names that must resolve
        optional: Names that may be absent (recorded as skipped)
        overrides: Config executable overrides

    Raises:
        DependencyMissing: For the first required name that does not resolve
    """
    resolved: dict[str, Path] = {}
    for name in required:
        path = resolve_executable(name, overrides)
        if path is None:
            dep = get_dependency(name)
            hint = f"Install it with your package manager (e.g. {dep.package})" if dep.package else None
            raise DependencyMissing(name, dep.url or None, hint=hint)
        resolved[name] = path

    skipped = []
    for name in optional:
        path = resolve_executable(name, overrides)
        if path is None:
            skipped.append(name)
        else:
            resolved[name] = path

    logger.debug("Resolved dependencies: %s", resolved)
    return DependencyCheck(resolved, skipped)


def check_tools_status(overrides: Mapping[str, Path] | None = None) -> dict[str, Path | None]:
    """
    Check status of every known external executable.

    Returns:
        Dict mapping dependency name to path (or None if missing)
    """
    return {name: resolve_executable(name, overrides) for name in KNOWN_DEPENDENCIES}
