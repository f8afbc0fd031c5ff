"""
Tool catalogue - every command built on the front-end.
"""

from ..frontend import ToolSpec
from .image_convert import PDF2JPG, WEBPJPG
from .image_optimize import MINPIC, MODIMG
from .imagedate import IMAGEDATE
from .vidcap import VIDCAP
from .video_edit import FADEVID, JOINVID, MARKVID, TRIMVID
from .video_encode import AVIMP4, CONVERTVID, COPYVID, MINSMVID, MINVID, STRIPVID

REGISTRY: dict[str, ToolSpec] = {
    tool.name: tool
    for tool in (
        TRIMVID,
        FADEVID,
        MARKVID,
        JOINVID,
        CONVERTVID,
        AVIMP4,
        COPYVID,
        MINVID,
        MINSMVID,
        STRIPVID,
        VIDCAP,
        IMAGEDATE,
        MINPIC,
        MODIMG,
        PDF2JPG,
        WEBPJPG,
    )
}


def get_tool(name: str) -> ToolSpec:
    """Look up a tool by name (KeyError if unknown)."""
    return REGISTRY[name]


__all__ = ["REGISTRY", "get_tool"]
