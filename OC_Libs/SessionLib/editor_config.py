"""
Editor session configuration.

Classes:
    EditorConfig: Tunable settings for an editing session
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Tuple, Union
import json

from OC_Libs.constants import (
    APPLY_QUALITY,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_QUIESCENCE_MS,
    DOWNLOAD_RESOLUTION,
    EXPORT_QUALITY,
    FORMAT_MIME_TYPES,
    MAX_UPLOAD_BYTES,
    SUPPORTED_MIME_TYPES,
)


@dataclass
class EditorConfig:
    """Configuration for an editing session.

    Attributes:
        quiescence_ms: Idle time after the last parameter change before the
            preview is recomputed (default: 50)
        output_format: Pillow format for committed and exported images (default: PNG)
        apply_quality: Encoder quality 0-1 used when committing an edit (default: 0.95)
        export_quality: Encoder quality 0-1 used for export and download (default: 0.9)
        download_resolution: Side of the square download canvas in pixels (default: 1080)
        max_upload_bytes: Largest accepted source image payload (default: 10MB)
        supported_mime_types: MIME types accepted for upload
    """
    quiescence_ms: int = DEFAULT_QUIESCENCE_MS
    output_format: str = DEFAULT_OUTPUT_FORMAT
    apply_quality: float = APPLY_QUALITY
    export_quality: float = EXPORT_QUALITY
    download_resolution: int = DOWNLOAD_RESOLUTION
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    supported_mime_types: Tuple[str, ...] = SUPPORTED_MIME_TYPES

    def __post_init__(self) -> None:
        self.output_format = str(self.output_format).strip().upper()
        if self.output_format == "JPG":
            self.output_format = "JPEG"
        self.supported_mime_types = tuple(str(m).lower() for m in self.supported_mime_types)

        if int(self.quiescence_ms) < 0:
            raise ValueError(f"quiescence_ms must be >= 0, got {self.quiescence_ms}")
        if self.output_format not in FORMAT_MIME_TYPES:
            raise ValueError(
                f"Unsupported output_format: {self.output_format}. "
                f"Valid formats: {', '.join(sorted(FORMAT_MIME_TYPES))}"
            )
        for name in ("apply_quality", "export_quality"):
            value = float(getattr(self, name))
            if not (0 < value <= 1):
                raise ValueError(f"{name} must be 0 < q <= 1, got {value}")
        if int(self.download_resolution) < 1:
            raise ValueError(f"download_resolution must be positive, got {self.download_resolution}")
        if int(self.max_upload_bytes) < 1:
            raise ValueError(f"max_upload_bytes must be positive, got {self.max_upload_bytes}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["supported_mime_types"] = list(self.supported_mime_types)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        """Create from dictionary, ignoring unknown keys."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "EditorConfig":
        """
        Load configuration from a JSON file.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not a JSON object or holds invalid values
        """
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a JSON object: {path}")
        return cls.from_dict(data)

    def to_json_file(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)
