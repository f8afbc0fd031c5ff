"""
Shared constants - file extensions and output naming conventions.
"""

# Raster images processed by modimg
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}

# Output suffixes appended before the extension
TRIM_SUFFIX = "-trim"
FADE_SUFFIX = "-faded"
MARK_SUFFIX = "-marked"
STRIP_SUFFIX = "-stripped"
MIN_SUFFIX = "-min"
MINSM_SUFFIX = "-minsm"

# Default output locations
CONVERTED_DIR = "converted"
JOINED_NAME = "joined.mp4"

# Minimum vips version whose `copy` can write JPEG XL
VIPS_JXL_MIN_VERSION = (8, 11)

# Exit statuses
EXIT_OK = 0
EXIT_FAILURE = 1
