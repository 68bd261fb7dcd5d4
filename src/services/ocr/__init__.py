"""Text recognition services package."""

from src.services.ocr.recognition import (
    InvalidImageError,
    RecognitionEngine,
    RecognitionError,
    RecognitionInitError,
    prepare_image,
)

__all__ = [
    "InvalidImageError",
    "RecognitionEngine",
    "RecognitionError",
    "RecognitionInitError",
    "prepare_image",
]
