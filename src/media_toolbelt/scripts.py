"""
Console-script entry points, one per tool (trimvid, fadevid, ...).
"""

import sys
from collections.abc import Callable

from .frontend import run_tool
from .tools import get_tool


def _entry_point(name: str) -> Callable[[], None]:
    def main() -> None:
        sys.exit(run_tool(get_tool(name), sys.argv[1:]))

    main.__name__ = name
    main.__doc__ = f"Run {name} with the process arguments."
    return main


trimvid = _entry_point("trimvid")
fadevid = _entry_point("fadevid")
markvid = _entry_point("markvid")
joinvid = _entry_point("joinvid")
convertvid = _entry_point("convertvid")
avimp4 = _entry_point("avimp4")
copyvid = _entry_point("copyvid")
minvid = _entry_point("minvid")
minsmvid = _entry_point("minsmvid")
stripvid = _entry_point("stripvid")
vidcap = _entry_point("vidcap")
imagedate = _entry_point("imagedate")
minpic = _entry_point("minpic")
modimg = _entry_point("modimg")
pdf2jpg = _entry_point("pdf2jpg")
webpjpg = _entry_point("webpjpg")
