"""
Preset Filters and the Filter Engine.

Provides two families of preset filters:
- Color-matrix filters: each output channel is a weighted sum of the pixel's
  own R, G, B channels plus an offset (grayscale, sepia, invert, vintage,
  cool, warm, brightness, contrast, saturate, hue-rotate)
- Kernel filters: 3x3 convolutions over a copy of the source (blur, sharpen,
  emboss). The outermost rows and columns are left as they are in the source.

Alpha is never changed and no filter changes the buffer's dimensions.

Example:
    >>> engine = ConvolutionFilterEngine()
    >>> sepia = engine.apply(buffer, FilterSelection.SEPIA)
    >>> same = engine.apply(buffer, "none")
"""

from enum import Enum
from typing import Any, Optional, Union
import logging
import math

import numpy as np

from OC_Libs.constants import CHANNEL_MAX
from OC_Libs.errors import InvalidBufferError
from OC_Libs.ImageEditingLib.filter_registry import FilterRegistry, build_default_registry
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer

logger = logging.getLogger(__name__)


class FilterSelection(str, Enum):
    """The preset filters offered by the editor. NONE is the identity."""
    NONE = "none"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    BLUR = "blur"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATE = "saturate"
    HUE_ROTATE = "hue-rotate"
    INVERT = "invert"
    VINTAGE = "vintage"
    COOL = "cool"
    WARM = "warm"
    SHARPEN = "sharpen"
    EMBOSS = "emboss"

    @classmethod
    def parse(cls, value: Any) -> Optional["FilterSelection"]:
        """Return the member for ``value`` (member or id string), or None if unknown."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# ============================================================================
# Color-matrix filters
# ============================================================================

def _saturate_matrix(amount: float) -> np.ndarray:
    return np.array([
        [0.213 + 0.787 * amount, 0.715 - 0.715 * amount, 0.072 - 0.072 * amount],
        [0.213 - 0.213 * amount, 0.715 + 0.285 * amount, 0.072 - 0.072 * amount],
        [0.213 - 0.213 * amount, 0.715 - 0.715 * amount, 0.072 + 0.928 * amount],
    ])


def _hue_rotate_matrix(degrees: float) -> np.ndarray:
    radians = math.radians(degrees)
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    return np.array([
        [0.213 + cos_a * 0.787 - sin_a * 0.213,
         0.715 - cos_a * 0.715 - sin_a * 0.715,
         0.072 - cos_a * 0.072 + sin_a * 0.928],
        [0.213 - cos_a * 0.213 + sin_a * 0.143,
         0.715 + cos_a * 0.285 + sin_a * 0.140,
         0.072 - cos_a * 0.072 - sin_a * 0.283],
        [0.213 - cos_a * 0.213 - sin_a * 0.787,
         0.715 - cos_a * 0.715 + sin_a * 0.715,
         0.072 + cos_a * 0.928 + sin_a * 0.072],
    ])


_IDENTITY = np.eye(3)
_NO_OFFSET = np.zeros(3)

BRIGHTNESS_AMOUNT = 1.3
CONTRAST_AMOUNT = 1.3
SATURATE_AMOUNT = 1.5
HUE_ROTATE_DEGREES = 90.0

# filter id -> (3x3 weights, per-channel offset)
COLOR_MATRICES = {
    "grayscale": (
        np.array([[0.299, 0.587, 0.114]] * 3),
        _NO_OFFSET,
    ),
    "sepia": (
        np.array([
            [0.393, 0.769, 0.189],
            [0.349, 0.686, 0.168],
            [0.272, 0.534, 0.131],
        ]),
        _NO_OFFSET,
    ),
    "vintage": (
        np.array([
            [0.9, 0.1, 0.1],
            [0.2, 0.7, 0.1],
            [0.1, 0.1, 0.9],
        ]),
        _NO_OFFSET,
    ),
    "cool": (_IDENTITY, np.array([0.0, 0.0, 20.0])),
    "warm": (_IDENTITY, np.array([20.0, 10.0, 0.0])),
    "invert": (-_IDENTITY, np.full(3, float(CHANNEL_MAX))),
    "brightness": (_IDENTITY * BRIGHTNESS_AMOUNT, _NO_OFFSET),
    "contrast": (
        _IDENTITY * CONTRAST_AMOUNT,
        np.full(3, (CHANNEL_MAX / 2) * (1 - CONTRAST_AMOUNT)),
    ),
    "saturate": (_saturate_matrix(SATURATE_AMOUNT), _NO_OFFSET),
    "hue-rotate": (_hue_rotate_matrix(HUE_ROTATE_DEGREES), _NO_OFFSET),
}


def apply_color_matrix(pixels: np.ndarray, weights: np.ndarray, offset: np.ndarray) -> np.ndarray:
    """
    Apply an affine color transform to every pixel.

    Args:
        pixels: (height, width, 4) uint8 array
        weights: 3x3 matrix; row i gives the R, G, B weights of output channel i
        offset: Value added to each output channel

    Returns:
        New (height, width, 4) uint8 array; values are clamped to 0-255 and
        rounded to the nearest integer (ties to even)
    """
    rgb = pixels[:, :, :3].astype(np.float64)
    mixed = rgb @ np.asarray(weights, dtype=np.float64).T + np.asarray(offset, dtype=np.float64)

    result = np.empty_like(pixels)
    result[:, :, :3] = np.rint(np.clip(mixed, 0, CHANNEL_MAX)).astype(np.uint8)
    result[:, :, 3] = pixels[:, :, 3]
    return result


def _matrix_filter(filter_id: str):
    weights, offset = COLOR_MATRICES[filter_id]

    def run(pixels: np.ndarray) -> np.ndarray:
        return apply_color_matrix(pixels, weights, offset)

    run.__name__ = f"apply_{filter_id.replace('-', '_')}"
    return run


# ============================================================================
# Kernel filters
# ============================================================================

BLUR_KERNEL = np.ones((3, 3))
BLUR_DIVISOR = 9
SHARPEN_KERNEL = np.array([
    [0, -1, 0],
    [-1, 5, -1],
    [0, -1, 0],
])
EMBOSS_KERNEL = np.array([
    [-2, -1, 0],
    [-1, 1, 1],
    [0, 1, 2],
])
EMBOSS_OFFSET = 128


def convolve_interior(
    pixels: np.ndarray,
    kernel: np.ndarray,
    offset: float = 0.0,
    divisor: float = 1.0,
) -> np.ndarray:
    """
    Convolve the RGB channels with a 3x3 kernel, skipping the border.

    Every output value is computed from the unmodified source array, so earlier
    results never feed later ones. Pixels in the first and last row and column
    keep their source values. Images narrower or shorter than 3 pixels have no
    interior and are returned as a copy.

    Args:
        pixels: (height, width, 4) uint8 array
        kernel: 3x3 weights; kernel[dy + 1][dx + 1] multiplies the neighbour at (x + dx, y + dy)
        offset: Value added to every convolved result before clamping
        divisor: The weighted sum is divided by this before the offset is added

    Returns:
        New (height, width, 4) uint8 array
    """
    result = pixels.copy()
    height, width = pixels.shape[:2]
    if height < 3 or width < 3:
        return result

    source = pixels[:, :, :3].astype(np.float64)
    total = np.zeros((height - 2, width - 2, 3), dtype=np.float64)
    for row in range(3):
        for col in range(3):
            weight = kernel[row][col]
            if weight == 0:
                continue
            total += weight * source[row:row + height - 2, col:col + width - 2]

    total = total / divisor + offset
    result[1:-1, 1:-1, :3] = np.rint(np.clip(total, 0, CHANNEL_MAX)).astype(np.uint8)
    return result


def apply_blur(pixels: np.ndarray) -> np.ndarray:
    """Average each interior pixel with its eight neighbours."""
    return convolve_interior(pixels, BLUR_KERNEL, divisor=BLUR_DIVISOR)


def apply_sharpen(pixels: np.ndarray) -> np.ndarray:
    """Five times the centre minus the four edge-adjacent neighbours."""
    return convolve_interior(pixels, SHARPEN_KERNEL)


def apply_emboss(pixels: np.ndarray) -> np.ndarray:
    """Directional emboss centred on mid gray."""
    return convolve_interior(pixels, EMBOSS_KERNEL, offset=EMBOSS_OFFSET)


# ============================================================================
# Catalog
# ============================================================================

_CATALOG = [
    ("grayscale", "Grayscale", "Black and white effect", "color-matrix"),
    ("sepia", "Sepia", "Vintage brown tone", "color-matrix"),
    ("blur", "Blur", "Soft focus effect", "kernel"),
    ("brightness", "Bright", "Increased brightness", "color-matrix"),
    ("contrast", "Contrast", "Enhanced contrast", "color-matrix"),
    ("saturate", "Vibrant", "Boosted saturation", "color-matrix"),
    ("hue-rotate", "Hue Shift", "Color spectrum shift", "color-matrix"),
    ("invert", "Invert", "Negative colors", "color-matrix"),
    ("vintage", "Vintage", "Retro film look", "color-matrix"),
    ("cool", "Cool", "Blue tone enhancement", "color-matrix"),
    ("warm", "Warm", "Orange tone enhancement", "color-matrix"),
    ("sharpen", "Sharpen", "Crisper edges", "kernel"),
    ("emboss", "Emboss", "Raised relief on gray", "kernel"),
]

_KERNEL_FUNCTIONS = {
    "blur": apply_blur,
    "sharpen": apply_sharpen,
    "emboss": apply_emboss,
}


def register_builtin_filters(registry: FilterRegistry) -> None:
    """Register every built-in filter with ``registry``."""
    for filter_id, name, description, family in _CATALOG:
        if family == "kernel":
            function = _KERNEL_FUNCTIONS[filter_id]
        else:
            function = _matrix_filter(filter_id)
        registry.register(
            filter_id,
            function,
            name=name,
            description=description,
            tags=[family],
        )


# ============================================================================
# Engine
# ============================================================================

class ConvolutionFilterEngine:
    """Applies one preset filter to a RasterBuffer, producing a new buffer."""

    def __init__(self, registry: Optional[FilterRegistry] = None) -> None:
        self.registry = registry if registry is not None else build_default_registry()

    def apply(
        self,
        original: RasterBuffer,
        selection: Union[FilterSelection, str, None],
    ) -> RasterBuffer:
        """
        Apply the filter named by ``selection`` to ``original``.

        Args:
            original: Source buffer (never modified)
            selection: A FilterSelection or filter id. NONE returns an identical
                copy; an id with no registered filter is logged and also
                returns an identical copy.

        Returns:
            A new RasterBuffer with the same dimensions

        Raises:
            InvalidBufferError: If ``original`` is malformed or the filter
                returned an array of a different shape
        """
        require_buffer(original)

        parsed = FilterSelection.parse(selection)
        filter_id = parsed.value if parsed is not None else str(selection).strip().lower()

        if filter_id == FilterSelection.NONE.value:
            return original.copy()

        if not self.registry.has_filter(filter_id):
            logger.warning(f"Unknown filter '{selection}', leaving image unchanged")
            return original.copy()

        source = original.to_array()
        result = self.registry.get_filter(filter_id)(source)

        if result.shape != source.shape:
            raise InvalidBufferError(
                f"Filter '{filter_id}' changed the buffer shape from {source.shape} to {result.shape}"
            )

        logger.debug(f"Applied filter '{filter_id}' to {original.width}x{original.height} buffer")
        return RasterBuffer.from_array(result)

    def available_filters(self):
        """Filter ids the engine can apply, including 'none'."""
        return [FilterSelection.NONE.value] + self.registry.list_filters()
