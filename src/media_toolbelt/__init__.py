"""
Media Toolbelt (mtb) - Small command-line wrappers around media tools

Each tool validates its arguments and dependencies, then delegates to:
- ffmpeg / ffprobe for video trimming, fading, watermarking and re-encoding
- ImageMagick, cwebp, avif and vips for image optimization and conversion
- exiftool for date rewriting
- Poppler for PDF rasterization
"""

__version__ = "0.1.0"
__package_name__ = "media-toolbelt"
__short_name__ = "mtb"
