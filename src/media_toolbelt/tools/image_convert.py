"""
Image format conversion - WebP to JPEG and PDF pages to JPEG.
"""

from collections.abc import Mapping

from ..errors import UsageError
from ..frontend import ToolContext, ToolOutcome, ToolSpec
from ..options import InputKind, OptionKind, OptionSpec, PositionalSpec
from ..probe import get_pdf_page_count


def _webp_to_jpg(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    output = ctx.output_path(source, extension=".jpg")
    intermediate = ctx.cleanup.temp_dir() / f"{source.stem}.png"

    ctx.run("dwebp", source, "-quiet", "-o", intermediate)
    ctx.run("convert", intermediate, output)
    return ToolOutcome(f"Converted to {output}", [output])


WEBPJPG = ToolSpec(
    name="webpjpg",
    summary="Convert a WebP image to JPEG.",
    execute=_webp_to_jpg,
    options=[
        OptionSpec("output", "o", "Write to this file instead of NAME.jpg.", kind=OptionKind.STRING, metavar="FILE"),
    ],
    positionals=[
        PositionalSpec("filename", "WebP image to convert.", metavar="FILE", input_kind=InputKind.FILE, noun="Image"),
    ],
    requires=("dwebp", "convert"),
    examples=[("Convert a downloaded image:", "webpjpg photo.webp")],
)


def describe_pages(total: int, first: int | None, last: int | None, only: int | None) -> str:
    """Human-readable page selection, e.g. 'Pages 2 to 5'."""
    if only is not None:
        return f"Page {only}"
    return f"Pages {first or 1} to {last or total}"


def _validate_pdf(values: Mapping[str, object]) -> None:
    if values["only"] is not None and (values["first"] is not None or values["last"] is not None):
        raise UsageError("--only cannot be combined with --first or --last.")
    if values["first"] is not None and values["last"] is not None and values["first"] > values["last"]:
        raise UsageError("--first must not be after --last.")


def _pdf_to_jpg(ctx: ToolContext) -> ToolOutcome:
    source = ctx.invocation.input
    images = ctx.config.images
    resolution = ctx.invocation.get("res", images.pdf_resolution)
    quality = ctx.invocation.get("quality", images.pdf_quality)
    first, last, only = ctx.params["first"], ctx.params["last"], ctx.params["only"]

    if not ctx.quiet:
        total = get_pdf_page_count(ctx.exe("pdfinfo"), source)
        pages = describe_pages(total, first, last, only)
        ctx.reporter.status(f"Processing {source} ({pages}, of {total} pages), please wait...")

    page_args = ["-r", str(resolution)]
    if only is not None:
        first = last = only
    if first is not None:
        page_args.extend(["-f", str(first)])
    if last is not None:
        page_args.extend(["-l", str(last)])

    prefix = source.parent / source.stem
    if not ctx.params["im"]:
        pattern = f"{source.stem}-*.jpg"
        existing = set(source.parent.glob(pattern))
        try:
            ctx.run("pdftoppm", "-jpeg", "-jpegopt", f"progressive=y,quality={quality}", *page_args, source, prefix)
        finally:
            # pdftoppm picks the page file names itself
            written = sorted(set(source.parent.glob(pattern)) - existing)
            for page in written:
                ctx.cleanup.partial(page)
        return ToolOutcome("Conversion complete.", written)

    work = ctx.cleanup.temp_dir()
    ctx.run("pdftoppm", "-png", *page_args, source, work / source.stem)

    outputs = []
    for page in sorted(work.glob(f"{source.stem}*.png")):
        output = ctx.claim_output(source.parent / f"{page.stem}.jpg")
        ctx.run("convert", page, "-strip", "-interlace", "Plane", "-quality", str(quality), output)
        ctx.reporter.success(f"{output} created.")
        outputs.append(output)
    return ToolOutcome("Conversion complete.", outputs)


PDF2JPG = ToolSpec(
    name="pdf2jpg",
    summary="Render the pages of a PDF as JPEG images.",
    description=(
        "Pages are written beside the PDF as NAME-1.jpg, NAME-2.jpg, ...\n"
        "With --im, pages are rendered to PNG and converted by ImageMagick, which\n"
        "produces smaller progressive JPEGs."
    ),
    execute=_pdf_to_jpg,
    options=[
        OptionSpec("first", "f", "First page to convert.", kind=OptionKind.INT, metavar="PAGE", minimum=1),
        OptionSpec("last", "l", "Last page to convert.", kind=OptionKind.INT, metavar="PAGE", minimum=1),
        OptionSpec("only", "o", "Convert only this page.", kind=OptionKind.INT, metavar="PAGE", minimum=1),
        OptionSpec("res", "r", "Resolution in DPI (default 72).", kind=OptionKind.INT, metavar="DPI", minimum=1),
        OptionSpec(
            "quality",
            "y",
            "JPEG quality, 1-100 (default 90).",
            kind=OptionKind.INT,
            metavar="Q",
            minimum=1,
            maximum=100,
        ),
        OptionSpec("im", "i", "Convert through ImageMagick instead of writing JPEGs directly."),
    ],
    positionals=[
        PositionalSpec("filename", "PDF to render.", metavar="FILE", input_kind=InputKind.FILE, noun="File"),
    ],
    requires=("pdfinfo", "pdftoppm"),
    requires_when=lambda values: ("convert",) if values["im"] else (),
    validate=_validate_pdf,
    examples=[
        ("Every page at 150 DPI:", "pdf2jpg --res=150 slides.pdf"),
        ("Pages 3 to 5 through ImageMagick:", "pdf2jpg -f 3 -l 5 --im slides.pdf"),
        ("Only the cover:", "pdf2jpg --only=1 slides.pdf"),
    ],
)
