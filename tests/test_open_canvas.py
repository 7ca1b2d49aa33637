"""
Tests for the open_canvas launcher.
"""

import sys

import pytest

import open_canvas


class TestMain:
    """Tests for main() without the gui extra."""

    def test_missing_pyqt5_exits_with_install_hint(self, monkeypatch):
        # A None entry makes the import raise ImportError.
        monkeypatch.setitem(sys.modules, "PyQt5", None)
        monkeypatch.setitem(sys.modules, "PyQt5.QtWidgets", None)
        monkeypatch.delitem(
            sys.modules, "OC_Libs.ImageEditingLib.image_editor_window", raising=False
        )

        with pytest.raises(SystemExit) as excinfo:
            open_canvas.main()

        assert "open-canvas[gui]" in str(excinfo.value)

    def test_module_imports_without_pyqt5(self):
        assert callable(open_canvas.main)
        assert "gui" in open_canvas.GUI_EXTRA_MESSAGE
