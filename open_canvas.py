from pathlib import Path
import logging
import sys

from OC_Libs.SessionLib.editor_config import EditorConfig

GUI_EXTRA_MESSAGE = (
    "The Open Canvas editor needs PyQt5. Install it with: pip install 'open-canvas[gui]'"
)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        from PyQt5.QtWidgets import QApplication
        from OC_Libs.ImageEditingLib.image_editor_window import OpenCanvasEditorWindow
    except ImportError as exc:
        raise SystemExit(f"{GUI_EXTRA_MESSAGE} ({exc})") from exc

    # Optional first argument: path to a JSON EditorConfig
    config = EditorConfig()
    if len(sys.argv) > 1 and Path(sys.argv[1]).suffix.lower() == ".json":
        config = EditorConfig.from_json_file(sys.argv[1])

    app = QApplication(sys.argv)
    window = OpenCanvasEditorWindow(config=config)
    window.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
