"""
OC_Libs - Open Canvas Library Modules

This package contains core functionality for the Open Canvas editor,
organized into specialized sub-packages:

- ImageEditingLib: Raster buffers and the pixel transforms (adjustments,
  filters, rotation), plus decode/encode helpers and the editor window
- SessionLib: Preview scheduling, resource lifecycle and the editing session
"""

__version__ = "0.1.0"
