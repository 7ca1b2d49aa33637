"""
In-memory RGBA raster buffer.

A RasterBuffer is the unit of work for every transform in the engine. Pixels
are held as immutable bytes in row-major R, G, B, A order, so a buffer handed
to a transform can never be modified by it. Transforms read pixels through a
read-only numpy view and build a new buffer from their output array.

Example:
    >>> buffer = RasterBuffer.filled(4, 4, (128, 128, 128, 255))
    >>> buffer.pixel(0, 0)
    (128, 128, 128, 255)
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from PIL import Image

from OC_Libs.constants import CHANNELS
from OC_Libs.errors import InvalidBufferError
from OC_Libs.ImageEditingLib.image_models import RgbaColor


@dataclass(frozen=True, eq=True)
class RasterBuffer:
    """
    A width x height grid of 8-bit RGBA pixels.

    Attributes:
        width: Image width in pixels (>= 1)
        height: Image height in pixels (>= 1)
        pixels: width * height * 4 bytes, row-major, channel order R, G, B, A

    Raises:
        InvalidBufferError: If the dimensions are not positive or the pixel
            length does not equal width * height * 4
    """
    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if isinstance(self.pixels, (bytearray, memoryview)):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        if not isinstance(self.pixels, bytes):
            raise InvalidBufferError(
                f"pixels must be bytes, got {type(self.pixels).__name__}"
            )
        if int(self.width) < 1 or int(self.height) < 1:
            raise InvalidBufferError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )
        expected = int(self.width) * int(self.height) * CHANNELS
        if len(self.pixels) != expected:
            raise InvalidBufferError(
                f"Pixel length {len(self.pixels)} does not match "
                f"{self.width}x{self.height}x{CHANNELS} = {expected}"
            )

    def __repr__(self) -> str:
        return f"RasterBuffer(width={self.width}, height={self.height})"

    @property
    def size(self):
        return self.width, self.height

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, array: Any) -> "RasterBuffer":
        """
        Build a buffer from an (height, width, 4) array.

        Values are expected to already be in 0-255; the array is cast to uint8.

        Raises:
            InvalidBufferError: If the array is not three-dimensional with 4 channels
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise InvalidBufferError(
                f"Expected an array of shape (height, width, {CHANNELS}), got {array.shape}"
            )
        height, width = array.shape[:2]
        data = np.ascontiguousarray(array, dtype=np.uint8).tobytes()
        return cls(width=width, height=height, pixels=data)

    @classmethod
    def from_image(cls, image: Any) -> "RasterBuffer":
        """Build a buffer from a PIL Image, converting it to RGBA first."""
        if not hasattr(image, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        width, height = rgba.size
        return cls(width=width, height=height, pixels=rgba.tobytes())

    @classmethod
    def filled(cls, width: int, height: int, color: RgbaColor) -> "RasterBuffer":
        """Build a buffer where every pixel has the same color."""
        if len(color) != CHANNELS:
            raise ValueError(f"color must have {CHANNELS} channels, got {color}")
        return cls(width=width, height=height, pixels=bytes(color) * (width * height))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def to_array(self) -> np.ndarray:
        """
        Return a read-only (height, width, 4) uint8 view of the pixels.

        Call ``.copy()`` on the result before writing to it.
        """
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.width, CHANNELS
        )

    def to_image(self) -> Any:
        """Return a new RGBA PIL Image holding a copy of the pixels."""
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    def pixel(self, x: int, y: int) -> RgbaColor:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        offset = (y * self.width + x) * CHANNELS
        r, g, b, a = self.pixels[offset:offset + CHANNELS]
        return r, g, b, a

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(width=self.width, height=self.height, pixels=bytes(self.pixels))


def require_buffer(buffer: Any) -> RasterBuffer:
    """
    Check that ``buffer`` is a well-formed RasterBuffer.

    Raises:
        InvalidBufferError: If ``buffer`` is not a RasterBuffer or its pixel
            length no longer matches its dimensions
    """
    if not isinstance(buffer, RasterBuffer):
        raise InvalidBufferError(f"Expected RasterBuffer, got {type(buffer).__name__}")
    if len(buffer.pixels) != buffer.width * buffer.height * CHANNELS:
        raise InvalidBufferError(
            f"Pixel length {len(buffer.pixels)} does not match {buffer.width}x{buffer.height}"
        )
    return buffer
