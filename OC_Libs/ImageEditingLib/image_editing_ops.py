"""
Image input and output operations for Open Canvas.

This module sits between the pixel engine and the outside world: it decodes
uploaded image bytes into RasterBuffers and encodes buffers back into image
blobs for commit, download and saving.

Functions:
    decode_image: Validate and decode image bytes into a RasterBuffer
    load_image: Read and decode an image file from disk
    get_save_kwargs: Build Pillow save() keyword arguments for a format
    encode_buffer: Encode a RasterBuffer into an EncodedImage
    render_for_download: Fit a buffer onto a square download canvas
    save_buffer: Encode a RasterBuffer and write it to disk
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from PIL import Image, UnidentifiedImageError

from OC_Libs.constants import (
    DEFAULT_OUTPUT_FORMAT,
    DOWNLOAD_BACKGROUND,
    DOWNLOAD_RESOLUTION,
    EXPORT_QUALITY,
    FORMAT_MIME_TYPES,
    LOSSY_FORMATS,
    MAX_UPLOAD_BYTES,
    SUPPORTED_MIME_TYPES,
)
from OC_Libs.errors import EncodingError, ImageDecodeError
from OC_Libs.ImageEditingLib.image_models import EncodedImage
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer

logger = logging.getLogger(__name__)


def _normalize_format(save_format: str) -> str:
    # PIL uses "JPEG" not "JPG"
    save_format = str(save_format).strip().upper()
    if save_format == "JPG":
        save_format = "JPEG"
    return save_format


def decode_image(
    data: bytes,
    mime_type: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
    supported_mime_types=SUPPORTED_MIME_TYPES,
) -> RasterBuffer:
    """
    Decode image bytes into an RGBA RasterBuffer.

    Args:
        data: Encoded image bytes
        mime_type: Declared MIME type of the upload, checked against
            ``supported_mime_types`` when given
        max_bytes: Largest accepted payload size
        supported_mime_types: MIME types accepted for upload

    Returns:
        RasterBuffer holding the decoded pixels

    Raises:
        ImageDecodeError: If the data is empty, too large, of an unsupported
            type or cannot be decoded
    """
    if not data:
        raise ImageDecodeError("No image data provided")

    if len(data) > max_bytes:
        raise ImageDecodeError(
            f"Image size should be less than {max_bytes // (1024 * 1024)}MB "
            f"(got {len(data)} bytes)"
        )

    if mime_type is not None and mime_type.lower() not in supported_mime_types:
        raise ImageDecodeError(
            f"Unsupported image type: {mime_type}. "
            f"Supported types: {', '.join(supported_mime_types)}"
        )

    try:
        with Image.open(BytesIO(data)) as image:
            image.load()
            buffer = RasterBuffer.from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"Failed to decode image: {exc}") from exc

    logger.debug(f"Decoded {len(data)} bytes into {buffer.width}x{buffer.height} buffer")
    return buffer


def load_image(path: Union[str, Path], max_bytes: int = MAX_UPLOAD_BYTES) -> RasterBuffer:
    """
    Read an image file and decode it into a RasterBuffer.

    Raises:
        OSError: If the file cannot be read
        ImageDecodeError: If the contents are rejected by decode_image
    """
    path = Path(path)
    if not path.is_file():
        raise OSError(f"Image file does not exist: {path}")
    return decode_image(path.read_bytes(), max_bytes=max_bytes)


def get_save_kwargs(save_format: str, quality: float) -> Dict[str, Any]:
    """
    Build Pillow ``Image.save()`` kwargs for a format.

    ``quality`` is given in 0-1 and is only passed to lossy encoders, scaled to
    Pillow's 1-100 range.
    """
    save_format = _normalize_format(save_format)
    kwargs: Dict[str, Any] = {"format": save_format}

    if save_format in LOSSY_FORMATS:
        kwargs["quality"] = max(1, min(100, int(round(quality * 100))))

    return kwargs


def encode_buffer(
    buffer: RasterBuffer,
    save_format: str = DEFAULT_OUTPUT_FORMAT,
    quality: float = EXPORT_QUALITY,
) -> EncodedImage:
    """
    Encode a RasterBuffer into an image blob.

    Args:
        buffer: Pixels to encode
        save_format: Pillow format name (PNG, JPEG, WEBP)
        quality: Encoder quality in 0-1 (ignored by lossless formats)

    Returns:
        EncodedImage with the encoded bytes and their metadata

    Raises:
        EncodingError: If the format is unknown or the encoder fails
    """
    require_buffer(buffer)
    save_format = _normalize_format(save_format)

    if save_format not in FORMAT_MIME_TYPES:
        raise EncodingError(
            f"Unsupported output format: {save_format}. "
            f"Supported formats: {', '.join(sorted(FORMAT_MIME_TYPES))}"
        )

    image = buffer.to_image()
    if save_format == "JPEG":
        # JPEG has no alpha channel
        image = image.convert("RGB")

    output = BytesIO()
    try:
        image.save(output, **get_save_kwargs(save_format, quality))
    except (OSError, ValueError, KeyError) as exc:
        raise EncodingError(f"Failed to encode image as {save_format}: {exc}") from exc

    data = output.getvalue()
    if not data:
        raise EncodingError(f"Encoder produced no data for {save_format}")

    logger.debug(f"Encoded {buffer.width}x{buffer.height} buffer as {save_format} ({len(data)} bytes)")
    return EncodedImage(
        data=data,
        format=save_format,
        mime_type=FORMAT_MIME_TYPES[save_format],
        width=buffer.width,
        height=buffer.height,
        quality=float(quality),
    )


def render_for_download(
    buffer: RasterBuffer,
    resolution: int = DOWNLOAD_RESOLUTION,
    background=DOWNLOAD_BACKGROUND,
) -> RasterBuffer:
    """
    Fit a buffer onto a square canvas for download.

    The image is scaled so it covers the whole ``resolution`` x ``resolution``
    canvas while keeping its aspect ratio, then centred; whatever overhangs is
    cropped. The result is composited over a canvas filled with ``background``.

    Raises:
        ValueError: If resolution is not positive
    """
    require_buffer(buffer)
    if resolution < 1:
        raise ValueError(f"resolution must be positive, got {resolution}")

    width, height = buffer.size
    if width > height:
        draw_height = resolution
        draw_width = round(width / height * resolution)
    elif height > width:
        draw_width = resolution
        draw_height = round(height / width * resolution)
    else:
        draw_width = draw_height = resolution

    scaled = buffer.to_image().resize((draw_width, draw_height), Image.Resampling.LANCZOS)
    offset_x = (resolution - draw_width) // 2
    offset_y = (resolution - draw_height) // 2

    layer = Image.new("RGBA", (resolution, resolution), (0, 0, 0, 0))
    layer.paste(scaled, (offset_x, offset_y))

    canvas = Image.new("RGBA", (resolution, resolution), tuple(background))
    return RasterBuffer.from_image(Image.alpha_composite(canvas, layer))


def save_buffer(
    buffer: RasterBuffer,
    output_path: Union[str, Path],
    save_format: str = DEFAULT_OUTPUT_FORMAT,
    quality: float = EXPORT_QUALITY,
) -> Path:
    """
    Encode a RasterBuffer and write it to disk.

    Raises:
        OSError: If the output directory does not exist or the file cannot be written
        EncodingError: If encoding fails
    """
    output_path = Path(output_path)
    if not output_path.parent.is_dir():
        raise OSError(f"Output directory does not exist: {output_path.parent}")

    encoded = encode_buffer(buffer, save_format=save_format, quality=quality)
    output_path.write_bytes(encoded.data)
    logger.info(f"Saved {encoded.format} image to {output_path}")
    return output_path
