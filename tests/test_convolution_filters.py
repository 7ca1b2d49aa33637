"""
Tests for preset filters, the filter registry and the filter engine.

Tests cover:
- Color-matrix filters on known pixel values
- Kernel filters, including the untouched border
- FilterSelection parsing
- FilterRegistry registration and lookup
- Engine fallbacks and error handling
"""

import logging
import unittest

import numpy as np
import pytest

from OC_Libs.errors import InvalidBufferError
from OC_Libs.ImageEditingLib.convolution_filters import (
    ConvolutionFilterEngine,
    FilterSelection,
    apply_blur,
    convolve_interior,
)
from OC_Libs.ImageEditingLib.filter_registry import FilterRegistry, build_default_registry
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer


def _single(color, selection):
    buffer = RasterBuffer.filled(1, 1, color)
    return ConvolutionFilterEngine().apply(buffer, selection).pixel(0, 0)


class TestFilterSelection(unittest.TestCase):
    """Test FilterSelection parsing."""

    def test_parse_member(self):
        self.assertIs(FilterSelection.parse(FilterSelection.SEPIA), FilterSelection.SEPIA)

    def test_parse_string_is_case_insensitive(self):
        self.assertIs(FilterSelection.parse(" Sepia "), FilterSelection.SEPIA)
        self.assertIs(FilterSelection.parse("hue-rotate"), FilterSelection.HUE_ROTATE)

    def test_parse_none(self):
        self.assertIs(FilterSelection.parse(None), FilterSelection.NONE)

    def test_parse_unknown(self):
        self.assertIsNone(FilterSelection.parse("posterize"))

    def test_member_compares_to_id(self):
        self.assertEqual(FilterSelection.COOL, "cool")


class TestColorMatrixFilters:
    """Color-matrix filters on single pixels."""

    def test_invert_white_is_black(self):
        assert _single((255, 255, 255, 255), "invert") == (0, 0, 0, 255)

    def test_invert(self):
        assert _single((10, 100, 250, 40), "invert") == (245, 155, 5, 40)

    def test_grayscale_uses_luma_weights(self):
        assert _single((255, 0, 0, 255), "grayscale") == (76, 76, 76, 255)

    def test_sepia(self):
        assert _single((100, 100, 100, 255), "sepia") == (135, 120, 94, 255)

    def test_sepia_clamps(self):
        assert _single((255, 255, 255, 255), "sepia") == (255, 255, 239, 255)

    def test_vintage(self):
        assert _single((100, 100, 100, 255), "vintage") == (110, 100, 110, 255)

    def test_cool_adds_blue(self):
        assert _single((10, 20, 30, 255), "cool") == (10, 20, 50, 255)
        assert _single((10, 20, 250, 255), "cool") == (10, 20, 255, 255)

    def test_warm_adds_red_and_green(self):
        assert _single((10, 20, 30, 255), "warm") == (30, 30, 30, 255)

    def test_brightness_preset(self):
        assert _single((100, 100, 100, 255), "brightness") == (130, 130, 130, 255)

    def test_contrast_preset(self):
        assert _single((100, 100, 100, 255), "contrast") == (92, 92, 92, 255)

    @pytest.mark.parametrize("selection", ["saturate", "hue-rotate"])
    def test_gray_is_fixed_point_of_chroma_filters(self, selection):
        assert _single((128, 128, 128, 255), selection) == (128, 128, 128, 255)

    def test_saturate_pushes_channels_apart(self):
        assert _single((200, 100, 50, 255), "saturate") == (241, 91, 16, 255)

    def test_hue_rotate_quarter_turn(self):
        assert _single((255, 0, 0, 255), "hue-rotate") == (0, 91, 0, 255)
        assert _single((0, 0, 255, 255), "hue-rotate") == (255, 0, 37, 255)

    def test_alpha_is_preserved(self, gradient_buffer):
        result = ConvolutionFilterEngine().apply(gradient_buffer, "sepia")
        np.testing.assert_array_equal(
            result.to_array()[:, :, 3], gradient_buffer.to_array()[:, :, 3]
        )


class TestKernelFilters:
    """3x3 kernel filters."""

    def test_blur_averages_interior(self, gradient_buffer):
        result = ConvolutionFilterEngine().apply(gradient_buffer, FilterSelection.BLUR)
        source = gradient_buffer.to_array().astype(np.float64)
        expected = np.rint(source[0:3, 1:4, :3].mean(axis=(0, 1)))
        np.testing.assert_array_equal(result.to_array()[1, 2, :3], expected)

    def test_blur_single_bright_pixel(self):
        array = np.zeros((3, 3, 4), dtype=np.uint8)
        array[:, :, 3] = 255
        array[1, 1, :3] = 255
        result = apply_blur(array)
        assert tuple(result[1, 1]) == (28, 28, 28, 255)

    def test_border_is_left_unchanged(self, gradient_buffer):
        source = gradient_buffer.to_array()
        for selection in ("blur", "sharpen", "emboss"):
            result = ConvolutionFilterEngine().apply(gradient_buffer, selection).to_array()
            np.testing.assert_array_equal(result[0], source[0])
            np.testing.assert_array_equal(result[-1], source[-1])
            np.testing.assert_array_equal(result[:, 0], source[:, 0])
            np.testing.assert_array_equal(result[:, -1], source[:, -1])

    def test_small_images_have_no_interior(self):
        array = np.full((2, 5, 4), 77, dtype=np.uint8)
        np.testing.assert_array_equal(convolve_interior(array, np.ones((3, 3))), array)

    def test_sharpen_keeps_uniform_image(self):
        buffer = RasterBuffer.filled(4, 4, (90, 60, 30, 255))
        assert ConvolutionFilterEngine().apply(buffer, "sharpen") == buffer

    def test_sharpen_clamps(self):
        array = np.full((3, 3, 4), 50, dtype=np.uint8)
        array[1, 1, :3] = 100
        result = ConvolutionFilterEngine().apply(RasterBuffer.from_array(array), "sharpen")
        assert result.pixel(1, 1)[:3] == (255, 255, 255)

    def test_emboss_offsets_uniform_image(self):
        buffer = RasterBuffer.filled(3, 3, (50, 50, 50, 255))
        result = ConvolutionFilterEngine().apply(buffer, "emboss")
        assert result.pixel(1, 1) == (178, 178, 178, 255)
        assert result.pixel(0, 0) == (50, 50, 50, 255)

    def test_reads_from_unmodified_source(self):
        # Blurred in place, column 2 would see the already blurred column 1 (40).
        array = np.zeros((3, 5, 4), dtype=np.uint8)
        for x in range(5):
            array[:, x, :3] = 90 if x % 2 else 0
        result = apply_blur(array)
        assert [int(v) for v in result[1, 1:4, 0]] == [30, 60, 30]


class TestFilterEngine:
    """Tests for ConvolutionFilterEngine."""

    def test_none_returns_equal_copy(self, gradient_buffer):
        result = ConvolutionFilterEngine().apply(gradient_buffer, FilterSelection.NONE)
        assert result == gradient_buffer
        assert result is not gradient_buffer

    def test_none_value_means_no_filter(self, gradient_buffer):
        assert ConvolutionFilterEngine().apply(gradient_buffer, None) == gradient_buffer

    def test_unknown_filter_logs_and_returns_copy(self, gradient_buffer, caplog):
        with caplog.at_level(logging.WARNING):
            result = ConvolutionFilterEngine().apply(gradient_buffer, "posterize")
        assert result == gradient_buffer
        assert "posterize" in caplog.text

    def test_every_filter_preserves_dimensions(self, gradient_buffer):
        engine = ConvolutionFilterEngine()
        for filter_id in engine.available_filters():
            assert engine.apply(gradient_buffer, filter_id).size == gradient_buffer.size

    def test_available_filters(self):
        available = ConvolutionFilterEngine().available_filters()
        assert available[0] == "none"
        assert set(available) == {member.value for member in FilterSelection}

    def test_custom_registry_filter(self, gray_buffer):
        registry = FilterRegistry()
        registry.register("zero-red", lambda p: np.concatenate([np.zeros_like(p[:, :, :1]), p[:, :, 1:]], axis=2))
        result = ConvolutionFilterEngine(registry).apply(gray_buffer, "zero-red")
        assert result.pixel(0, 0) == (0, 128, 128, 255)

    def test_shape_changing_filter_raises(self, gray_buffer):
        registry = FilterRegistry()
        registry.register("crop", lambda p: p[1:, 1:].copy())
        with pytest.raises(InvalidBufferError):
            ConvolutionFilterEngine(registry).apply(gray_buffer, "crop")

    def test_rejects_non_buffer(self):
        with pytest.raises(InvalidBufferError):
            ConvolutionFilterEngine().apply(None, "sepia")


class TestFilterRegistry(unittest.TestCase):
    """Test FilterRegistry."""

    def setUp(self):
        self.registry = FilterRegistry()
        self.identity = lambda pixels: pixels.copy()

    def test_register_and_get(self):
        self.registry.register("Noop", self.identity, name="No-op")
        self.assertTrue(self.registry.has_filter("noop"))
        self.assertIs(self.registry.get_filter("NOOP"), self.identity)
        self.assertIn("noop", self.registry)
        self.assertEqual(len(self.registry), 1)

    def test_register_duplicate(self):
        self.registry.register("noop", self.identity)
        with self.assertRaises(RuntimeError):
            self.registry.register("noop", self.identity)

    def test_register_invalid(self):
        with self.assertRaises(ValueError):
            self.registry.register("", self.identity)
        with self.assertRaises(ValueError):
            self.registry.register("noop", "not callable")

    def test_get_unknown(self):
        with self.assertRaises(KeyError):
            self.registry.get_filter("missing")

    def test_unregister(self):
        self.registry.register("noop", self.identity)
        self.assertTrue(self.registry.unregister("noop"))
        self.assertFalse(self.registry.unregister("noop"))

    def test_metadata_defaults_name(self):
        self.registry.register("noop", self.identity, tags=["Custom"])
        meta = self.registry.get_metadata("noop")
        self.assertEqual(meta["name"], "Noop")
        self.assertEqual(meta["tags"], ["Custom"])
        self.assertEqual(self.registry.filter_by_tag("custom"), ["noop"])

    def test_default_registry(self):
        registry = build_default_registry()
        self.assertEqual(len(registry), 13)
        self.assertEqual(registry.filter_by_tag("kernel"), ["blur", "emboss", "sharpen"])
        self.assertEqual(registry.get_metadata("saturate")["name"], "Vibrant")


if __name__ == "__main__":
    unittest.main()
