"""
Constants and configuration values for Open Canvas.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Pixel layout
CHANNELS = 4
CHANNEL_MAX = 255

# Adjustment slider range
ADJUSTMENT_MIN = -100
ADJUSTMENT_MAX = 100

# Rotation
VALID_ROTATIONS = (0, 90, 180, 270)
FULL_TURN = 360

# Preview scheduling
DEFAULT_QUIESCENCE_MS = 50

# Encoding
DEFAULT_OUTPUT_FORMAT = "PNG"
DEFAULT_MIME_TYPE = "image/png"
EXPORT_QUALITY = 0.9
APPLY_QUALITY = 0.95
DOWNLOAD_RESOLUTION = 1080
DOWNLOAD_BACKGROUND = (0, 0, 0, 255)
DOWNLOAD_FILENAME = "open-canvas-edited-image.png"

# Upload limits
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
SUPPORTED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

# Pillow format name -> MIME type
FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}

# Formats whose encoders honour a quality setting
LOSSY_FORMATS = {"JPEG", "WEBP"}

# Resource handles
HANDLE_PREFIX = "blob:"

# UI constants
DEFAULT_WINDOW_WIDTH = 1400
DEFAULT_WINDOW_HEIGHT = 850
PREVIEW_MIN_SIZE = 450
