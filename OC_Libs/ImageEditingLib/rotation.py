"""
Right-angle rotation of raster buffers.

Rotations are clockwise and restricted to multiples of 90 degrees. Each output
pixel is mapped back to its source pixel by rotating about the image centre.
Coordinates are doubled so pixel centres fall on integers and the mapping is
exact; no interpolation takes place.

For a source of width W and height H rotated by 90 degrees the output is H
wide and W tall, and source pixel (x, y) lands at output (H - 1 - y, x).
"""

from enum import IntEnum
from typing import Any, Union
import logging

import numpy as np

from OC_Libs.constants import FULL_TURN, VALID_ROTATIONS
from OC_Libs.errors import UnsupportedAngleError
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer

logger = logging.getLogger(__name__)


class RotationAngle(IntEnum):
    """Clockwise rotation in degrees."""
    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270

    @property
    def swaps_dimensions(self) -> bool:
        return self in (RotationAngle.DEG_90, RotationAngle.DEG_270)


# angle -> (cos, sin)
_RIGHT_ANGLE_TRIG = {
    0: (1, 0),
    90: (0, 1),
    180: (-1, 0),
    270: (0, -1),
}


def normalize_angle(angle: Union[int, float, Any]) -> RotationAngle:
    """
    Reduce ``angle`` mod 360 and return the matching RotationAngle.

    Raises:
        UnsupportedAngleError: If the angle is not a whole multiple of 90 degrees
    """
    if isinstance(angle, bool):
        raise UnsupportedAngleError(f"Unsupported rotation angle: {angle!r}")
    try:
        value = float(angle)
    except (TypeError, ValueError):
        raise UnsupportedAngleError(f"Unsupported rotation angle: {angle!r}") from None

    if not value.is_integer():
        raise UnsupportedAngleError(f"Unsupported rotation angle: {angle!r}")

    degrees = int(value) % FULL_TURN
    if degrees not in VALID_ROTATIONS:
        raise UnsupportedAngleError(
            f"Unsupported rotation angle: {angle!r}. "
            f"Valid angles: {', '.join(str(a) for a in VALID_ROTATIONS)}"
        )
    return RotationAngle(degrees)


def rotated_size(width: int, height: int, angle: Any):
    """Output (width, height) for rotating a width x height image by ``angle``."""
    if normalize_angle(angle).swaps_dimensions:
        return height, width
    return width, height


def source_coordinates(width: int, height: int, angle: Any):
    """
    Map every output pixel to the source pixel it samples.

    Args:
        width: Source width
        height: Source height
        angle: Clockwise rotation

    Returns:
        Tuple (src_x, src_y) of integer arrays shaped like the output image
    """
    degrees = int(normalize_angle(angle))
    cos_a, sin_a = _RIGHT_ANGLE_TRIG[degrees]
    out_width, out_height = rotated_size(width, height, degrees)

    out_y, out_x = np.indices((out_height, out_width))
    # Offsets from the output centre, doubled.
    dx = 2 * out_x + 1 - out_width
    dy = 2 * out_y + 1 - out_height

    # Inverse of the clockwise rotation (y axis points down).
    src_dx = cos_a * dx + sin_a * dy
    src_dy = -sin_a * dx + cos_a * dy

    src_x = (src_dx + width - 1) // 2
    src_y = (src_dy + height - 1) // 2
    return src_x, src_y


class RotationTransform:
    """Rotates a RasterBuffer by a right angle, producing a new buffer."""

    def apply(self, original: RasterBuffer, angle: Union[RotationAngle, int]) -> RasterBuffer:
        """
        Rotate ``original`` clockwise by ``angle`` degrees.

        Args:
            original: Source buffer (never modified)
            angle: 0, 90, 180 or 270, or any value congruent to one of them mod 360

        Returns:
            A new RasterBuffer; width and height are swapped for 90 and 270

        Raises:
            InvalidBufferError: If ``original`` is malformed
            UnsupportedAngleError: If ``angle`` is not a multiple of 90
        """
        require_buffer(original)
        normalized = normalize_angle(angle)

        if normalized == RotationAngle.DEG_0:
            return original.copy()

        source = original.to_array()
        src_x, src_y = source_coordinates(original.width, original.height, normalized)
        rotated = source[src_y, src_x]

        logger.debug(
            f"Rotated {original.width}x{original.height} buffer by {int(normalized)} degrees"
        )
        return RasterBuffer.from_array(rotated)
