"""
Editing Session.

An EditorSession owns everything one open image needs: the canonical original
buffer, the current (pending) edit parameters, the preview scheduler and the
resource manager for the handles it creates.

Previews and commits are always derived from the original plus the current
parameters, never from an earlier preview, so edits stay non-cumulative and
reversible until they are applied. Applying is the only operation that
replaces the original; it also resets every parameter to the identity.

Pipeline order: adjustments, then the preset filter, then rotation.

Classes:
    EditParams: Snapshot of the parameters a preview is computed from
    EditorSession: The editing session

Example:
    >>> session = EditorSession.from_bytes(png_bytes)
    >>> session.set_adjustments(brightness=30, contrast=10)
    >>> session.set_filter("sepia")
    >>> session.timer.advance(50)          # preview recomputed once
    >>> handle = session.apply()           # commit, returns a ResourceHandle
    >>> session.close()
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union
import logging

from OC_Libs.constants import FULL_TURN
from OC_Libs.errors import ImageEngineError
from OC_Libs.ImageEditingLib.color_adjustments import (
    AdjustmentState,
    ColorAdjustmentEngine,
    IDENTITY_ADJUSTMENTS,
)
from OC_Libs.ImageEditingLib.convolution_filters import ConvolutionFilterEngine, FilterSelection
from OC_Libs.ImageEditingLib.image_editing_ops import (
    decode_image,
    encode_buffer,
    render_for_download,
)
from OC_Libs.ImageEditingLib.image_models import EncodedImage
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer, require_buffer
from OC_Libs.ImageEditingLib.rotation import RotationAngle, RotationTransform, normalize_angle
from OC_Libs.SessionLib.editor_config import EditorConfig
from OC_Libs.SessionLib.preview_scheduler import PreviewScheduler
from OC_Libs.SessionLib.preview_timers import CooperativeTimer, PreviewTimer
from OC_Libs.SessionLib.resource_manager import ResourceHandle, ResourceLifecycleManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditParams:
    """Adjustments, filter and pending rotation for one render."""
    adjustments: AdjustmentState = field(default_factory=AdjustmentState)
    filter: str = FilterSelection.NONE.value
    rotation: RotationAngle = RotationAngle.DEG_0

    @property
    def is_identity(self) -> bool:
        return (
            self.adjustments.is_identity
            and self.filter == FilterSelection.NONE.value
            and self.rotation == RotationAngle.DEG_0
        )


IDENTITY_PARAMS = EditParams()


class EditorSession:
    """
    One image being edited.

    Args:
        original: Decoded source image
        config: Session settings (default: EditorConfig())
        timer: Timer for the preview quiescence window (default: CooperativeTimer)
        display: Called with each new preview buffer
        resources: Handle registry owned by this session (default: a new one)
        on_error: Called with engine errors raised while computing a preview
    """

    def __init__(
        self,
        original: RasterBuffer,
        config: Optional[EditorConfig] = None,
        timer: Optional[PreviewTimer] = None,
        display: Optional[Callable[[RasterBuffer], None]] = None,
        resources: Optional[ResourceLifecycleManager] = None,
        on_error: Optional[Callable[[ImageEngineError], None]] = None,
    ) -> None:
        require_buffer(original)

        self.config = config if config is not None else EditorConfig()
        self.timer = timer if timer is not None else CooperativeTimer()
        self.resources = resources if resources is not None else ResourceLifecycleManager()

        self.adjustment_engine = ColorAdjustmentEngine()
        self.filter_engine = ConvolutionFilterEngine()
        self.rotation_transform = RotationTransform()

        self._original = original
        self._params = IDENTITY_PARAMS
        self._display = display
        self.preview = original
        self.display_handle: Optional[ResourceHandle] = None
        self.commit_count = 0
        self._closed = False

        self.scheduler = PreviewScheduler(
            render=self.render,
            display=self._show_preview,
            timer=self.timer,
            quiescence_ms=self.config.quiescence_ms,
            on_error=on_error,
        )

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        mime_type: Optional[str] = None,
        config: Optional[EditorConfig] = None,
        **kwargs: Any,
    ) -> "EditorSession":
        """
        Decode uploaded bytes and open a session on them.

        Raises:
            ImageDecodeError: If the upload is rejected or cannot be decoded
        """
        config = config if config is not None else EditorConfig()
        original = decode_image(
            data,
            mime_type=mime_type,
            max_bytes=config.max_upload_bytes,
            supported_mime_types=config.supported_mime_types,
        )
        return cls(original, config=config, **kwargs)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        config: Optional[EditorConfig] = None,
        **kwargs: Any,
    ) -> "EditorSession":
        path = Path(path)
        if not path.is_file():
            raise OSError(f"Image file does not exist: {path}")
        return cls.from_bytes(path.read_bytes(), config=config, **kwargs)

    def __enter__(self) -> "EditorSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def original(self) -> RasterBuffer:
        return self._original

    @property
    def params(self) -> EditParams:
        return self._params

    @property
    def adjustments(self) -> AdjustmentState:
        return self._params.adjustments

    @property
    def filter(self) -> str:
        return self._params.filter

    @property
    def rotation(self) -> RotationAngle:
        return self._params.rotation

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_pending_changes(self) -> bool:
        return not self._params.is_identity

    # ------------------------------------------------------------------
    # Parameter changes
    # ------------------------------------------------------------------

    def set_adjustments(self, **changes: int) -> AdjustmentState:
        """
        Change one or more adjustment sliders and schedule a preview.

        Raises:
            KeyError: If a name is not an adjustment
        """
        state = self._params.adjustments.replace(**changes)
        self._update(adjustments=state)
        return state

    def set_adjustment_state(self, state: AdjustmentState) -> None:
        if not isinstance(state, AdjustmentState):
            raise TypeError(f"Expected AdjustmentState, got {type(state)}")
        self._update(adjustments=state)

    def set_filter(self, selection: Union[FilterSelection, str, None]) -> str:
        """
        Select the preset filter and schedule a preview.

        Ids with no registered filter are logged and treated as NONE.

        Returns:
            The filter id now active
        """
        parsed = FilterSelection.parse(selection)
        if parsed is not None:
            filter_id = parsed.value
        elif self.filter_engine.registry.has_filter(str(selection)):
            filter_id = str(selection).strip().lower()
        else:
            logger.warning(f"Unknown filter '{selection}', using no filter")
            filter_id = FilterSelection.NONE.value

        self._update(filter=filter_id)
        return filter_id

    def set_rotation(self, angle: Union[RotationAngle, int]) -> RotationAngle:
        """
        Set the pending rotation and schedule a preview.

        Raises:
            UnsupportedAngleError: If the angle is not a multiple of 90
        """
        normalized = normalize_angle(angle)
        self._update(rotation=normalized)
        return normalized

    def rotate_clockwise(self) -> RotationAngle:
        return self.set_rotation((int(self.rotation) + 90) % FULL_TURN)

    def rotate_counterclockwise(self) -> RotationAngle:
        return self.set_rotation((int(self.rotation) - 90) % FULL_TURN)

    def reset(self) -> None:
        """Discard pending parameters and schedule a preview of the original."""
        self._ensure_open()
        self._params = IDENTITY_PARAMS
        self.scheduler.request(self._params)

    def _update(self, **changes: Any) -> None:
        self._ensure_open()
        values = {
            "adjustments": self._params.adjustments,
            "filter": self._params.filter,
            "rotation": self._params.rotation,
        }
        values.update(changes)
        self._params = EditParams(**values)
        self.scheduler.request(self._params)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, params: Optional[EditParams] = None) -> RasterBuffer:
        """
        Compute the edited image from the original.

        Pure with respect to the session: neither the original nor the
        parameters are changed.
        """
        params = params if params is not None else self._params

        if params.is_identity:
            return self._original

        result = self.adjustment_engine.apply(self._original, params.adjustments)
        result = self.filter_engine.apply(result, params.filter)
        result = self.rotation_transform.apply(result, params.rotation)
        return result

    def refresh_preview(self) -> bool:
        """Compute a pending preview immediately. Returns True if one ran."""
        return self.scheduler.flush()

    def _show_preview(self, buffer: RasterBuffer) -> None:
        self.preview = buffer
        if self._display is not None:
            self._display(buffer)

    # ------------------------------------------------------------------
    # Commit and export
    # ------------------------------------------------------------------

    def apply(self) -> Optional[ResourceHandle]:
        """
        Commit the current parameters.

        Renders the original with the current parameters, encodes the result
        and registers it as the new display handle. The result becomes the new
        original and every parameter returns to the identity. The previous
        display handle is revoked only after the new one is installed.

        Returns:
            The new display handle, or None if there was nothing to apply

        Raises:
            ImageEngineError: If rendering fails (InvalidBufferError, ...)
            EncodingError: If the result cannot be encoded; the original,
                the parameters and the existing handles are left untouched
        """
        self._ensure_open()
        if not self.has_pending_changes:
            logger.debug("Nothing to apply")
            return None

        result = self.render(self._params)
        encoded = encode_buffer(
            result,
            save_format=self.config.output_format,
            quality=self.config.apply_quality,
        )

        previous = self.display_handle
        self.display_handle = self.resources.replace(previous, encoded.data, encoded.mime_type)

        self.scheduler.cancel()
        self._original = result
        self._params = IDENTITY_PARAMS
        self.commit_count += 1
        self._show_preview(result)

        logger.info(
            f"Applied edit #{self.commit_count}: {result.width}x{result.height}, "
            f"{len(encoded)} bytes as {encoded.format}"
        )
        return self.display_handle

    def export(self, for_download: bool = False) -> EncodedImage:
        """
        Encode the committed image.

        Args:
            for_download: Fit the image onto the square download canvas first

        Raises:
            EncodingError: If encoding fails
        """
        buffer = self._original
        if for_download:
            buffer = render_for_download(buffer, self.config.download_resolution)
        return encode_buffer(
            buffer,
            save_format=self.config.output_format,
            quality=self.config.export_quality,
        )

    def export_handle(self, for_download: bool = False) -> ResourceHandle:
        """Encode the committed image and register it with the session's resources."""
        self._ensure_open()
        encoded = self.export(for_download=for_download)
        return self.resources.create(encoded.data, encoded.mime_type)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel pending previews and revoke every handle. Safe to call twice."""
        if self._closed:
            return
        self.scheduler.cancel()
        revoked = self.resources.revoke_all()
        self.display_handle = None
        self._closed = True
        logger.info(f"Closed editing session ({revoked} handle(s) revoked)")

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Editing session is closed")
