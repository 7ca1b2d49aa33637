"""
Image editing data models for Open Canvas.

This module defines small data structures shared by the editing operations.

Classes:
    EncodedImage: An encoded image blob together with the metadata used to produce it

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

from dataclasses import dataclass
from typing import Tuple

RgbaColor = Tuple[int, int, int, int]


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    format: str
    mime_type: str
    width: int
    height: int
    quality: float

    def __len__(self) -> int:
        return len(self.data)
