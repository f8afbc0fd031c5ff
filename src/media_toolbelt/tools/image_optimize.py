"""
Image optimization - lossless recompression and modern web formats.

modimg treats every encoder as optional: a requested format whose encoder
is missing is skipped with a warning, and other formats still run. New
format files are only created when they do not already exist, so it can be
re-run over the same directory (for example on every site deploy).
"""

from collections.abc import Mapping
from pathlib import Path

from ..constants import IMAGE_EXTENSIONS, VIPS_JXL_MIN_VERSION
from ..dependencies import get_dependency
from ..errors import BatchFailure, UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec
from ..probe import get_vips_version


def _minpic(ctx: ToolContext) -> ToolOutcome:
    def optimize(image: Path) -> Path:
        ctx.run("trimage", "--quiet", f"--file={image}")
        return image

    result = ctx.batch(ctx.invocation.inputs, optimize, noun="images")
    return ToolOutcome(f"Optimized {result.total} image(s).")


MINPIC = ToolSpec(
    name="minpic",
    summary="Losslessly recompress JPEG and PNG images in place with Trimage.",
    execute=_minpic,
    positionals=[
        PositionalSpec(
            "filenames",
            "Images to optimize.",
            metavar="FILE",
            variadic=True,
            missing_message="Filename must be provided.",
            input_kind=InputKind.FILE,
            noun="Image",
        ),
    ],
    requires=("trimage",),
    examples=[("Optimize every PNG here:", "minpic *.png")],
)


def _operations(values: Mapping[str, object]) -> dict[str, bool]:
    full = bool(values["full"])
    return {
        "optimize": full or bool(values["optimize"]) or values["size"] is not None,
        "webp": full or bool(values["webp"]),
        "avif": full or bool(values["avif"]),
        "jxl": full or bool(values["jxl"]),
    }


def _validate(values: Mapping[str, object]) -> None:
    if not any(_operations(values).values()):
        raise UsageError("No operations requested.")


def _optional_encoders(values: Mapping[str, object]) -> list[str]:
    ops = _operations(values)
    names = []
    if ops["optimize"]:
        names.append("mogrify")
    if ops["webp"]:
        names.append("cwebp")
    if ops["avif"]:
        names.extend(["avif", "npx"])
    if ops["jxl"]:
        names.extend(["vips", "convert"])
    return names


def find_images(root: Path, exclude: Path | None = None) -> list[Path]:
    """All jpg/jpeg/png/gif files below root, sorted, skipping anything under exclude."""
    images = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
            continue
        if exclude is not None and exclude in path.parents:
            continue
        images.append(path)
    return images


def _skip(ctx: ToolContext, label: str, dependency: str) -> None:
    url = get_dependency(dependency).url
    ctx.reporter.warning(f"{label} skipped: {dependency} <{url}> is required and was not found.")


def _jxl_command(ctx: ToolContext) -> list[str] | None:
    """vips copy when vips is new enough, otherwise ImageMagick convert."""
    if "vips" in ctx.deps:
        version = get_vips_version(ctx.exe("vips"))
        if version is not None and version >= VIPS_JXL_MIN_VERSION:
            return [ctx.exe("vips"), "copy"]
    if "convert" in ctx.deps:
        return [ctx.exe("convert")]
    return None


def _modimg(ctx: ToolContext) -> ToolOutcome:
    root = ctx.invocation.input
    ops = _operations(ctx.params)
    subdir = ctx.params["output_dir"]
    out_dir = root / subdir if subdir else root
    out_dir.mkdir(parents=True, exist_ok=True)

    images = find_images(root, exclude=out_dir if out_dir != root else None)
    if not images:
        ctx.reporter.status(f"No images found in {root}")
        return ToolOutcome()

    failed = total = 0

    def run_batch(items: list[Path], action) -> None:
        nonlocal failed, total
        result = ctx.batch(items, action, noun="images", raise_on_failure=False)
        failed += result.failed
        total += result.total

    def created(image: Path, extension: str) -> Path:
        return out_dir / f"{image.stem}{extension}"

    if ops["optimize"]:
        if "mogrify" in ctx.deps:
            args = []
            if ctx.params["optimize"] or ctx.params["full"]:
                args.append("-strip")
            if ctx.params["size"] is not None:
                args.extend(["-thumbnail", f"{ctx.params['size']}>"])
            if ctx.quiet:
                args.append("-quiet")

            def optimize(image: Path) -> Path:
                if out_dir == root:
                    ctx.run("mogrify", *args, image)
                    return image
                target = ctx.claim_output(out_dir / image.name)
                ctx.run("mogrify", *args, "-path", out_dir, image)
                return target

            run_batch(images, optimize)
        else:
            _skip(ctx, "Optimization and/or resizing", "mogrify")

    if ops["webp"]:
        if "cwebp" in ctx.deps:

            def to_webp(image: Path) -> Path:
                target = ctx.claim_output(created(image, ".webp"))
                ctx.run("cwebp", "-quiet", image, "-o", target)
                return target

            pending = [img for img in images if img.suffix.lower() != ".gif" and not created(img, ".webp").exists()]
            run_batch(pending, to_webp)
        else:
            _skip(ctx, "WebP", "cwebp")

    if ops["avif"]:
        if "avif" in ctx.deps:

            def to_avif(image: Path) -> Path:
                target = ctx.claim_output(created(image, ".avif"))
                if "npx" in ctx.deps:
                    ctx.run("npx", ctx.exe("avif"), f"--input={image}", f"--output={out_dir}")
                else:
                    ctx.run("avif", "-e", image, "-o", target)
                return target

            run_batch([img for img in images if not created(img, ".avif").exists()], to_avif)
        else:
            _skip(ctx, "AVIF", "avif")

    if ops["jxl"]:
        encoder = _jxl_command(ctx)
        if encoder is not None:

            def to_jxl(image: Path) -> Path:
                target = ctx.claim_output(created(image, ".jxl"))
                ctx.runner.run([*encoder, str(image), str(target)])
                return target

            run_batch([img for img in images if not created(img, ".jxl").exists()], to_jxl)
        else:
            _skip(ctx, "JXL", "convert")

    if failed:
        raise BatchFailure(failed, total, "images")
    return ToolOutcome(f"Processed {len(images)} image(s) from {root}; output in {out_dir}")


MODIMG = ToolSpec(
    name="modimg",
    summary="Create optimized and modern-format (WebP, AVIF, JXL) images for the web.",
    description=(
        "Collects every JPEG, PNG and GIF below DIR. Modern formats are only created if\n"
        "they don't exist yet. A requested format whose encoder is not installed is\n"
        "skipped with a warning. Without --output, optimized images overwrite the originals."
    ),
    execute=_modimg,
    usage=[
        "[-f|--full] [-q|--quiet] [-p|--output=<DIR>] [-s|--size=<PX>] DIR",
        "[-o|--optimize] [-a|--avif] [-j|--jxl] [-w|--webp] [-q|--quiet] [-p|--output=<DIR>] [-s|--size=<PX>] DIR",
    ],
    options=[
        OptionSpec("optimize", "o", "Strip metadata from the fallback images. Requires ImageMagick."),
        OptionSpec("avif", "a", "Generate AVIF images. Requires avif-cli (npm) or go-avif."),
        OptionSpec("jxl", "j", "Generate JXL images. Requires libvips 8.11+ or ImageMagick."),
        OptionSpec("webp", "w", "Generate WebP images. Requires libwebp."),
        OptionSpec("full", "f", "Optimize and generate every available format."),
        OptionSpec(
            "size", "s", "Resize to at most this many pixels. Requires ImageMagick.", kind=OptionKind.INT, metavar="PX"
        ),
        OptionSpec(
            "output",
            "p",
            "Subdirectory of DIR for new and optimized images.",
            kind=OptionKind.STRING,
            dest="output_dir",
            metavar="DIR",
        ),
    ],
    positionals=[
        PositionalSpec(
            "directory",
            "Directory to process (searched recursively).",
            metavar="DIR",
            input_kind=InputKind.DIRECTORY,
            noun="Directory",
        ),
    ],
    optional_when=_optional_encoders,
    validate=_validate,
    examples=[
        ("Optimize and create every format in the current directory:", "modimg -f ."),
        ("Create WebP images quietly:", "modimg -w --quiet ."),
        ("WebP, AVIF and optimized fallbacks into ./modern:", "modimg -wao --output=modern ."),
        (
            "All formats, at most 1000px, into pictures/new_pictures:",
            "modimg -f -s=1000 --output=new_pictures pictures",
        ),
    ],
)
