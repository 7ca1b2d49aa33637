from pathlib import Path
from typing import Callable, Dict, Optional
import logging

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QImage, QPixmap
from PyQt5.QtWidgets import (
    QFileDialog,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from OC_Libs.constants import (
    ADJUSTMENT_MAX,
    ADJUSTMENT_MIN,
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    DOWNLOAD_FILENAME,
    PREVIEW_MIN_SIZE,
)
from OC_Libs.errors import ImageEngineError
from OC_Libs.ImageEditingLib.color_adjustments import AdjustmentState
from OC_Libs.ImageEditingLib.convolution_filters import FilterSelection
from OC_Libs.ImageEditingLib.image_editing_ops import save_buffer
from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer
from OC_Libs.SessionLib.editor_config import EditorConfig
from OC_Libs.SessionLib.editor_session import EditorSession
from OC_Libs.SessionLib.preview_timers import PreviewTimer
from OC_Libs.SessionLib.qt_timer import QtSingleShotTimer

logger = logging.getLogger(__name__)


class OpenCanvasEditorWindow(QMainWindow):
    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        timer_factory: Optional[Callable[[], PreviewTimer]] = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Open Canvas Editor")
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        self.config = config if config is not None else EditorConfig()
        self._timer_factory = timer_factory or (lambda: QtSingleShotTimer(self))
        self.session: Optional[EditorSession] = None
        self.image_path: Optional[Path] = None
        self.sliders: Dict[str, QSlider] = {}

        self._build_ui()
        self._connect_signals()
        self._set_controls_enabled(False)

    def _build_ui(self) -> None:
        central = QWidget(self)
        self.setCentralWidget(central)

        root = QHBoxLayout(central)

        controls_col = QVBoxLayout()
        previews_col = QHBoxLayout()

        self.btn_open_image = QPushButton("Open Image")
        self.btn_rotate_left = QPushButton("Rotate Left")
        self.btn_rotate_right = QPushButton("Rotate Right")
        self.btn_reset = QPushButton("Reset")
        self.btn_apply = QPushButton("Apply")
        self.btn_save = QPushButton("Save")

        sliders_grid = QGridLayout()
        for row, name in enumerate(AdjustmentState.field_names()):
            slider = QSlider(Qt.Horizontal)
            slider.setRange(ADJUSTMENT_MIN, ADJUSTMENT_MAX)
            slider.setValue(0)
            slider.setObjectName(name)
            self.sliders[name] = slider
            sliders_grid.addWidget(QLabel(name.title()), row, 0)
            sliders_grid.addWidget(slider, row, 1)

        self.filters_list = QListWidget()
        self.label_rotation = QLabel("Rotation: 0°")
        self.label_original_preview = QLabel("Original")
        self.label_edited_preview = QLabel("Preview")

        for label in (self.label_original_preview, self.label_edited_preview):
            label.setAlignment(Qt.AlignCenter)
            label.setMinimumSize(PREVIEW_MIN_SIZE, PREVIEW_MIN_SIZE)
            label.setStyleSheet("border: 1px solid #888;")

        rotate_row = QHBoxLayout()
        rotate_row.addWidget(self.btn_rotate_left)
        rotate_row.addWidget(self.btn_rotate_right)

        controls_col.addWidget(self.btn_open_image)
        controls_col.addWidget(QLabel("Adjustments"))
        controls_col.addLayout(sliders_grid)
        controls_col.addWidget(QLabel("Filters"))
        controls_col.addWidget(self.filters_list)
        controls_col.addWidget(self.label_rotation)
        controls_col.addLayout(rotate_row)
        controls_col.addWidget(self.btn_reset)
        controls_col.addWidget(self.btn_apply)
        controls_col.addWidget(self.btn_save)

        previews_col.addWidget(self.label_original_preview)
        previews_col.addWidget(self.label_edited_preview)

        root.addLayout(controls_col, stretch=1)
        root.addLayout(previews_col, stretch=2)

    def _connect_signals(self) -> None:
        self.btn_open_image.clicked.connect(self.open_image)
        for name, slider in self.sliders.items():
            slider.valueChanged.connect(
                lambda value, adjustment=name: self.on_adjustment_changed(adjustment, value)
            )
        self.filters_list.currentRowChanged.connect(self.on_filter_selected)
        self.btn_rotate_left.clicked.connect(self.rotate_left)
        self.btn_rotate_right.clicked.connect(self.rotate_right)
        self.btn_reset.clicked.connect(self.reset_edits)
        self.btn_apply.clicked.connect(self.apply_edits)
        self.btn_save.clicked.connect(self.save_image)

    def open_image(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Image",
            "",
            "Images (*.png *.jpg *.jpeg *.webp)",
        )
        if not file_path:
            return

        try:
            session = EditorSession.from_file(
                file_path,
                config=self.config,
                timer=self._timer_factory(),
                display=self._show_edited,
                on_error=self._on_preview_error,
            )
        except (OSError, ImageEngineError) as exc:
            logger.error(f"Failed to open {file_path}: {exc}")
            QMessageBox.warning(self, "Open Failed", str(exc))
            return

        self.image_path = Path(file_path)
        self.set_session(session)
        logger.info(f"Opened {self.image_path.name} ({session.original.width}x{session.original.height})")

    def set_session(self, session: EditorSession) -> None:
        """Replace the current session, closing the previous one."""
        if self.session is not None:
            self.session.close()

        self.session = session
        self._populate_filters()
        self._sync_controls()
        self._set_preview(self.label_original_preview, session.original)
        self._set_preview(self.label_edited_preview, session.preview)
        self._set_controls_enabled(True)

    def open_buffer(self, buffer: RasterBuffer) -> EditorSession:
        session = EditorSession(
            buffer,
            config=self.config,
            timer=self._timer_factory(),
            display=self._show_edited,
            on_error=self._on_preview_error,
        )
        self.set_session(session)
        return session

    def _populate_filters(self) -> None:
        self.filters_list.blockSignals(True)
        self.filters_list.clear()
        registry = self.session.filter_engine.registry
        for filter_id in self.session.filter_engine.available_filters():
            if filter_id == FilterSelection.NONE.value:
                self.filters_list.addItem("Original")
            else:
                self.filters_list.addItem(registry.get_metadata(filter_id)["name"])
        self.filters_list.blockSignals(False)

    def on_adjustment_changed(self, name: str, value: int) -> None:
        if self.session is None:
            return
        self.session.set_adjustments(**{name: value})

    def on_filter_selected(self, row: int) -> None:
        if self.session is None or row < 0:
            return
        filter_id = self.session.filter_engine.available_filters()[row]
        self.session.set_filter(filter_id)

    def rotate_left(self) -> None:
        if self.session is None:
            return
        self.session.rotate_counterclockwise()
        self.label_rotation.setText(f"Rotation: {int(self.session.rotation)}°")

    def rotate_right(self) -> None:
        if self.session is None:
            return
        self.session.rotate_clockwise()
        self.label_rotation.setText(f"Rotation: {int(self.session.rotation)}°")

    def reset_edits(self) -> None:
        if self.session is None:
            return
        self.session.reset()
        self._sync_controls()

    def apply_edits(self) -> None:
        if self.session is None:
            return

        try:
            handle = self.session.apply()
        except ImageEngineError as exc:
            logger.error(f"Failed to apply edits: {exc}")
            QMessageBox.warning(self, "Apply Failed", str(exc))
            return

        if handle is None:
            return

        self._sync_controls()
        self._set_preview(self.label_original_preview, self.session.original)

    def save_image(self) -> None:
        if self.session is None:
            return

        default_name = self.image_path.stem + "_edited.png" if self.image_path else DOWNLOAD_FILENAME
        save_path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Image",
            default_name,
            "PNG Images (*.png)",
        )
        if not save_path:
            return

        try:
            save_buffer(
                self.session.original,
                save_path,
                save_format=self.config.output_format,
                quality=self.config.export_quality,
            )
        except (OSError, ImageEngineError) as exc:
            logger.error(f"Failed to save {save_path}: {exc}")
            QMessageBox.warning(self, "Save Failed", str(exc))
            return

        self._show_info("Success", "Image saved successfully.")

    def closeEvent(self, event) -> None:
        if self.session is not None:
            self.session.close()
        super().closeEvent(event)

    def _sync_controls(self) -> None:
        # Programmatic updates must not schedule previews.
        state = self.session.adjustments
        for name, slider in self.sliders.items():
            slider.blockSignals(True)
            slider.setValue(getattr(state, name))
            slider.blockSignals(False)

        self.filters_list.blockSignals(True)
        available = self.session.filter_engine.available_filters()
        self.filters_list.setCurrentRow(available.index(self.session.filter))
        self.filters_list.blockSignals(False)

        self.label_rotation.setText(f"Rotation: {int(self.session.rotation)}°")

    def _set_controls_enabled(self, enabled: bool) -> None:
        for slider in self.sliders.values():
            slider.setEnabled(enabled)
        for widget in (
            self.filters_list,
            self.btn_rotate_left,
            self.btn_rotate_right,
            self.btn_reset,
            self.btn_apply,
            self.btn_save,
        ):
            widget.setEnabled(enabled)

    def _show_edited(self, buffer: RasterBuffer) -> None:
        self._set_preview(self.label_edited_preview, buffer)

    def _on_preview_error(self, error: ImageEngineError) -> None:
        self.label_edited_preview.setText(f"Preview failed: {error}")

    def _set_preview(self, label: QLabel, buffer: RasterBuffer) -> None:
        image = QImage(
            buffer.pixels,
            buffer.width,
            buffer.height,
            buffer.width * 4,
            QImage.Format_RGBA8888,
        ).copy()
        pixmap = QPixmap.fromImage(image)
        if pixmap.isNull():
            label.setText("Preview failed")
            return

        scaled = pixmap.scaled(
            label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )
        label.setPixmap(scaled)

    def _show_info(self, title: str, message: str) -> None:
        QMessageBox.information(self, title, message)
