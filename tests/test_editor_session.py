"""
Tests for EditorSession.

Tests cover:
- Opening a session from bytes and files
- Debounced previews derived from the original
- Pipeline order
- Applying edits and handle replacement
- Export and download rendering
- Teardown
"""

import logging

import pytest

from OC_Libs.errors import EncodingError, ImageDecodeError, UnsupportedAngleError
from OC_Libs.ImageEditingLib.color_adjustments import AdjustmentState
from OC_Libs.ImageEditingLib.convolution_filters import FilterSelection
from OC_Libs.ImageEditingLib.image_editing_ops import decode_image
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer
from OC_Libs.ImageEditingLib.rotation import RotationAngle
from OC_Libs.SessionLib.editor_config import EditorConfig
from OC_Libs.SessionLib.editor_session import EditorSession, EditParams, IDENTITY_PARAMS
from OC_Libs.SessionLib.preview_scheduler import SchedulerState


@pytest.fixture
def shown():
    return []


@pytest.fixture
def session(gradient_buffer, cooperative_timer, shown):
    return EditorSession(gradient_buffer, timer=cooperative_timer, display=shown.append)


class TestEditParams:
    """Tests for EditParams."""

    def test_identity(self):
        assert IDENTITY_PARAMS.is_identity
        assert not EditParams(filter="sepia").is_identity
        assert not EditParams(rotation=RotationAngle.DEG_90).is_identity
        assert not EditParams(adjustments=AdjustmentState(contrast=5)).is_identity


class TestOpening:
    """Tests for session constructors."""

    def test_from_bytes(self, png_bytes):
        session = EditorSession.from_bytes(png_bytes, mime_type="image/png")
        assert session.original.size == (6, 4)
        assert session.params == IDENTITY_PARAMS
        assert not session.has_pending_changes

    def test_from_bytes_respects_config_limits(self, png_bytes):
        config = EditorConfig(max_upload_bytes=10)
        with pytest.raises(ImageDecodeError):
            EditorSession.from_bytes(png_bytes, config=config)

    def test_from_file(self, tmp_path, png_bytes):
        path = tmp_path / "red.png"
        path.write_bytes(png_bytes)
        assert EditorSession.from_file(path).original.size == (6, 4)

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            EditorSession.from_file(tmp_path / "missing.png")


class TestPreviews:
    """Tests for parameter changes and preview scheduling."""

    def test_changes_are_debounced(self, session, cooperative_timer, shown):
        for value in (10, 20, 30, 40):
            session.set_adjustments(brightness=value)
            cooperative_timer.advance(20)
        assert shown == []

        cooperative_timer.advance(50)
        assert len(shown) == 1
        assert session.scheduler.computation_count == 1
        expected = session.render(EditParams(adjustments=AdjustmentState(brightness=40)))
        assert shown[0] == expected
        assert session.preview == expected

    def test_previews_are_not_cumulative(self, session, cooperative_timer, gradient_buffer):
        session.set_adjustments(brightness=50)
        cooperative_timer.advance(50)
        session.set_adjustments(brightness=0)
        cooperative_timer.advance(50)
        assert session.preview == gradient_buffer
        assert session.original == gradient_buffer

    def test_render_identity_returns_original(self, session):
        assert session.render() is session.original

    def test_render_does_not_touch_state(self, session, gradient_buffer):
        session.set_filter("invert")
        session.render()
        assert session.original == gradient_buffer
        assert session.filter == "invert"

    def test_adjustments_run_before_filter(self):
        buffer = RasterBuffer.filled(3, 3, (200, 30, 30, 255))
        session = EditorSession(buffer)
        session.set_adjustments(brightness=-100)
        session.set_filter(FilterSelection.INVERT)
        # Darkened to black first, then inverted to white.
        assert session.render().pixel(1, 1) == (255, 255, 255, 255)

    def test_rotation_runs_last(self, session, gradient_buffer):
        session.set_rotation(90)
        session.set_filter("grayscale")
        result = session.render()
        assert result.size == (gradient_buffer.height, gradient_buffer.width)

    def test_refresh_preview(self, session, shown):
        session.set_filter("sepia")
        assert session.refresh_preview() is True
        assert len(shown) == 1
        assert session.scheduler.state is SchedulerState.IDLE

    def test_set_adjustment_state(self, session):
        session.set_adjustment_state(AdjustmentState(shadows=20))
        assert session.adjustments.shadows == 20
        with pytest.raises(TypeError):
            session.set_adjustment_state({"shadows": 20})

    def test_unknown_adjustment_name(self, session):
        with pytest.raises(KeyError):
            session.set_adjustments(gamma=3)

    def test_unknown_filter_falls_back_to_none(self, session, caplog):
        with caplog.at_level(logging.WARNING):
            assert session.set_filter("posterize") == "none"
        assert "posterize" in caplog.text
        assert session.filter == "none"

    def test_rotation_steps(self, session):
        assert session.rotate_counterclockwise() is RotationAngle.DEG_270
        assert session.rotate_clockwise() is RotationAngle.DEG_0
        session.rotate_clockwise()
        assert session.rotate_clockwise() is RotationAngle.DEG_180
        with pytest.raises(UnsupportedAngleError):
            session.set_rotation(45)

    def test_reset(self, session, cooperative_timer, shown, gradient_buffer):
        session.set_adjustments(contrast=40)
        session.set_filter("blur")
        session.reset()
        assert session.params == IDENTITY_PARAMS
        cooperative_timer.advance(50)
        assert shown == [gradient_buffer]


class TestApply:
    """Tests for committing edits."""

    def test_nothing_to_apply(self, session):
        assert session.apply() is None
        assert session.commit_count == 0
        assert session.resources.get_active_count() == 0

    def test_apply_commits_and_resets(self, session, gradient_buffer, shown):
        session.set_rotation(90)
        session.set_filter("invert")
        expected = session.render()

        handle = session.apply()

        assert handle is not None and handle.is_active
        assert handle.mime_type == "image/png"
        assert decode_image(handle.data) == expected
        assert session.original == expected
        assert session.original.size == (gradient_buffer.height, gradient_buffer.width)
        assert session.params == IDENTITY_PARAMS
        assert session.commit_count == 1
        assert shown[-1] == expected
        assert session.scheduler.state is SchedulerState.IDLE

    def test_apply_cancels_pending_preview(self, session, cooperative_timer, shown):
        session.set_filter("sepia")
        session.apply()
        shown.clear()
        cooperative_timer.advance(100)
        assert shown == []

    def test_second_apply_revokes_previous_handle(self, session):
        session.set_filter("sepia")
        first = session.apply()
        session.set_adjustments(brightness=10)
        second = session.apply()

        assert not first.is_active
        assert second.is_active
        assert session.display_handle is second
        assert session.resources.get_active_count() == 1

    def test_edits_build_on_committed_image(self, session, gradient_buffer):
        session.set_filter("invert")
        session.apply()
        session.set_filter("invert")
        session.apply()
        assert session.original == gradient_buffer

    def test_encoding_failure_leaves_session_untouched(self, session, gradient_buffer, monkeypatch):
        session.set_filter("sepia")
        first = session.apply()
        committed = session.original
        session.set_adjustments(brightness=25)

        def fail(*args, **kwargs):
            raise EncodingError("encoder unavailable")

        monkeypatch.setattr("OC_Libs.SessionLib.editor_session.encode_buffer", fail)
        with pytest.raises(EncodingError):
            session.apply()

        assert session.original == committed
        assert session.adjustments.brightness == 25
        assert session.display_handle is first
        assert first.is_active
        assert session.commit_count == 1


class TestExport:
    """Tests for export and export_handle."""

    def test_export(self, session, gradient_buffer):
        encoded = session.export()
        assert (encoded.width, encoded.height) == gradient_buffer.size
        assert encoded.quality == 0.9
        assert decode_image(encoded.data) == gradient_buffer

    def test_export_ignores_pending_changes(self, session, gradient_buffer):
        session.set_filter("invert")
        assert decode_image(session.export().data) == gradient_buffer

    def test_export_for_download(self, gradient_buffer):
        session = EditorSession(gradient_buffer, config=EditorConfig(download_resolution=16))
        encoded = session.export(for_download=True)
        assert (encoded.width, encoded.height) == (16, 16)

    def test_export_handle_is_tracked(self, session):
        handle = session.export_handle()
        assert session.resources.is_valid(handle)


class TestClose:
    """Tests for session teardown."""

    def test_close_revokes_everything(self, session, cooperative_timer, shown):
        session.set_filter("sepia")
        handle = session.apply()
        export = session.export_handle()
        session.set_filter("blur")

        session.close()

        assert session.is_closed
        assert not handle.is_active
        assert not export.is_active
        assert session.display_handle is None
        assert session.resources.get_active_count() == 0
        shown.clear()
        cooperative_timer.advance(100)
        assert shown == []

    def test_close_is_idempotent(self, session):
        session.close()
        session.close()
        assert session.is_closed

    def test_closed_session_rejects_changes(self, session):
        session.close()
        with pytest.raises(RuntimeError):
            session.set_filter("sepia")
        with pytest.raises(RuntimeError):
            session.apply()
        with pytest.raises(RuntimeError):
            session.export_handle()

    def test_context_manager(self, gradient_buffer):
        with EditorSession(gradient_buffer) as session:
            handle = session.export_handle()
        assert session.is_closed
        assert not handle.is_active
