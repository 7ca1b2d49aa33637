"""
ImageEditingLib - Core image editing functionality

This module provides the raster buffer, the pixel transforms (tonal
adjustments, preset filters, rotation) and the decode/encode operations
for the Open Canvas project.
"""

from OC_Libs.ImageEditingLib.image_models import EncodedImage, RgbaColor
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer
from OC_Libs.ImageEditingLib.color_adjustments import (
    AdjustmentState,
    ColorAdjustmentEngine,
    IDENTITY_ADJUSTMENTS,
)
from OC_Libs.ImageEditingLib.filter_registry import FilterRegistry, build_default_registry
from OC_Libs.ImageEditingLib.convolution_filters import (
    ConvolutionFilterEngine,
    FilterSelection,
)
from OC_Libs.ImageEditingLib.rotation import (
    RotationAngle,
    RotationTransform,
    normalize_angle,
)
from OC_Libs.ImageEditingLib.image_editing_ops import (
    decode_image,
    load_image,
    encode_buffer,
    render_for_download,
    save_buffer,
)

__all__ = [
    "EncodedImage",
    "RgbaColor",
    "RasterBuffer",
    "require_buffer",
    "AdjustmentState",
    "ColorAdjustmentEngine",
    "IDENTITY_ADJUSTMENTS",
    "FilterRegistry",
    "build_default_registry",
    "ConvolutionFilterEngine",
    "FilterSelection",
    "RotationAngle",
    "RotationTransform",
    "normalize_angle",
    "decode_image",
    "load_image",
    "encode_buffer",
    "render_for_download",
    "save_buffer",
]
