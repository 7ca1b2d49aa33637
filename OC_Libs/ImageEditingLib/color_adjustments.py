"""
Tonal color adjustments.

Applies the six slider adjustments of the editor (brightness, contrast,
saturation, exposure, highlights, shadows) to a RasterBuffer. Saturation,
exposure, highlights and shadows work on the HSL representation of each
pixel; brightness and contrast work on the RGB channels afterwards. The order
is fixed and the steps do not commute:

    1. RGB -> HSL
    2. saturation   s = clamp(s + saturation / 100)
    3. exposure     l = clamp(l * (1 + exposure / 100))
    4. highlights   l = clamp(l + highlights / 200 * (l - 0.5))   where l > 0.5
    5. shadows      l = clamp(l + shadows / 200 * (0.5 - l))      where l < 0.5
    6. HSL -> RGB   (rounded to whole channel values)
    7. brightness   c = clamp(c * (1 + brightness / 100), 0, 255)
    8. contrast     c = clamp(f * (c - 128) + 128, 0, 255)

Alpha is passed through untouched.

Example:
    >>> engine = ColorAdjustmentEngine()
    >>> result = engine.apply(buffer, AdjustmentState(brightness=50))
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Tuple
import logging

import numpy as np

from OC_Libs.constants import ADJUSTMENT_MAX, ADJUSTMENT_MIN, CHANNEL_MAX
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer

logger = logging.getLogger(__name__)


def clamp_adjustment(value: Any) -> int:
    """Round a slider value to an int and clamp it to [-100, 100]."""
    return int(max(ADJUSTMENT_MIN, min(ADJUSTMENT_MAX, round(float(value)))))


@dataclass(frozen=True)
class AdjustmentState:
    """Slider values for one adjustment pass.

    Every field is an int in [-100, 100]; out-of-range values are clamped
    rather than rejected. The all-zero state is the identity.
    """
    brightness: int = 0
    contrast: int = 0
    saturation: int = 0
    exposure: int = 0
    highlights: int = 0
    shadows: int = 0

    def __post_init__(self) -> None:
        for field in fields(self):
            object.__setattr__(self, field.name, clamp_adjustment(getattr(self, field.name)))

    @property
    def is_identity(self) -> bool:
        return not any(getattr(self, field.name) for field in fields(self))

    def replace(self, **changes: Any) -> "AdjustmentState":
        """Return a copy with some values changed.

        Raises:
            KeyError: If a name is not an adjustment
        """
        unknown = set(changes) - set(self.field_names())
        if unknown:
            raise KeyError(f"Unknown adjustment(s): {', '.join(sorted(unknown))}")
        values = self.to_dict()
        values.update(changes)
        return AdjustmentState(**values)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(field.name for field in fields(cls))

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdjustmentState":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


IDENTITY_ADJUSTMENTS = AdjustmentState()


# ============================================================================
# HSL conversion
# ============================================================================

def rgb_to_hsl(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert channel arrays (0-255) to hue, saturation and lightness in [0, 1].

    Achromatic pixels (max == min) get hue and saturation 0. When several
    channels share the maximum, red wins over green and green over blue.
    """
    r = r / CHANNEL_MAX
    g = g / CHANNEL_MAX
    b = b / CHANNEL_MAX

    cmax = np.maximum(np.maximum(r, g), b)
    cmin = np.minimum(np.minimum(r, g), b)
    lightness = (cmax + cmin) / 2
    delta = cmax - cmin
    chromatic = delta != 0

    with np.errstate(divide="ignore", invalid="ignore"):
        saturation = np.where(
            lightness > 0.5,
            delta / (2 - cmax - cmin),
            delta / (cmax + cmin),
        )
        hue_r = (g - b) / delta + np.where(g < b, 6.0, 0.0)
        hue_g = (b - r) / delta + 2
        hue_b = (r - g) / delta + 4

    hue = np.where(cmax == r, hue_r, np.where(cmax == g, hue_g, hue_b)) / 6

    hue = np.where(chromatic, hue, 0.0)
    saturation = np.where(chromatic, saturation, 0.0)
    return hue, saturation, lightness


def _hue_to_channel(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.where(t < 0, t + 1, t)
    t = np.where(t > 1, t - 1, t)
    return np.where(
        t < 1 / 6,
        p + (q - p) * 6 * t,
        np.where(
            t < 1 / 2,
            q,
            np.where(t < 2 / 3, p + (q - p) * (2 / 3 - t) * 6, p),
        ),
    )


def hsl_to_rgb(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert HSL arrays in [0, 1] back to channel values.

    Channels are rounded half-up to whole numbers in 0-255 but returned as
    float arrays so later steps can keep working in floating point.
    """
    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q

    r = _hue_to_channel(p, q, h + 1 / 3)
    g = _hue_to_channel(p, q, h)
    b = _hue_to_channel(p, q, h - 1 / 3)

    achromatic = s == 0
    r = np.where(achromatic, l, r)
    g = np.where(achromatic, l, g)
    b = np.where(achromatic, l, b)

    return (
        np.floor(r * CHANNEL_MAX + 0.5),
        np.floor(g * CHANNEL_MAX + 0.5),
        np.floor(b * CHANNEL_MAX + 0.5),
    )


def contrast_factor(contrast: int) -> float:
    """Affine contrast multiplier for a slider value in [-100, 100]."""
    return (259 * (contrast + 255)) / (255 * (259 - contrast))


def to_channel_bytes(values: np.ndarray) -> np.ndarray:
    """Clamp float channel values to 0-255 and round ties to even."""
    return np.rint(np.clip(values, 0, CHANNEL_MAX)).astype(np.uint8)


# ============================================================================
# Engine
# ============================================================================

class ColorAdjustmentEngine:
    """Applies an AdjustmentState to a RasterBuffer, producing a new buffer."""

    def apply(self, original: RasterBuffer, state: AdjustmentState) -> RasterBuffer:
        """
        Apply the adjustments in ``state`` to ``original``.

        Args:
            original: Source buffer (never modified)
            state: Slider values; the all-zero state returns an identical copy

        Returns:
            A new RasterBuffer with the same dimensions

        Raises:
            InvalidBufferError: If ``original`` is malformed
            TypeError: If ``state`` is not an AdjustmentState
        """
        require_buffer(original)
        if not isinstance(state, AdjustmentState):
            raise TypeError(f"Expected AdjustmentState, got {type(state)}")

        if state.is_identity:
            return original.copy()

        source = original.to_array()
        rgb = source[:, :, :3].astype(np.float64)
        hue, sat, light = rgb_to_hsl(rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2])

        if state.saturation != 0:
            sat = np.clip(sat + state.saturation / 100, 0, 1)

        if state.exposure != 0:
            light = np.clip(light * (1 + state.exposure / 100), 0, 1)

        if state.highlights != 0:
            bright_areas = light > 0.5
            raised = np.clip(light + (state.highlights / 200) * (light - 0.5), 0, 1)
            light = np.where(bright_areas, raised, light)

        if state.shadows != 0:
            dark_areas = light < 0.5
            lifted = np.clip(light + (state.shadows / 200) * (0.5 - light), 0, 1)
            light = np.where(dark_areas, lifted, light)

        channels = np.stack(hsl_to_rgb(hue, sat, light), axis=-1)

        if state.brightness != 0:
            channels = np.clip(channels * (1 + state.brightness / 100), 0, CHANNEL_MAX)

        if state.contrast != 0:
            factor = contrast_factor(state.contrast)
            channels = np.clip(factor * (channels - 128) + 128, 0, CHANNEL_MAX)

        result = np.empty_like(source)
        result[:, :, :3] = to_channel_bytes(channels)
        result[:, :, 3] = source[:, :, 3]

        logger.debug(f"Applied adjustments {state.to_dict()} to {original.width}x{original.height} buffer")
        return RasterBuffer.from_array(result)
