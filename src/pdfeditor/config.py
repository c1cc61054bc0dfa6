"""
pdfeditor - Application Constants

Paths and fixed defaults shared across the package.
"""

import os
from typing import Final

# Configuration directory
CONFIG_DIR: Final[str] = os.path.expanduser("~/.config/pdfeditor")

# Drag must travel this far (in pixels) before it is recognized
DEFAULT_DRAG_THRESHOLD_PX: Final[int] = 8

# Preview rendering
DEFAULT_THUMBNAIL_WIDTH: Final[int] = 200
DEFAULT_RENDER_TIMEOUT_SECONDS: Final[int] = 120

# Output naming
DEFAULT_FILENAME_PREFIX: Final[str] = "edited_"

VALID_ROTATIONS: Final[tuple[int, ...]] = (0, 90, 180, 270)
