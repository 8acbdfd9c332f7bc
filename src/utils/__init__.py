"""Doodle Mentor Utilities"""

from .image_processor import decode_image_payload, to_data_url, ImageDecodeError
from .health_probe import check_health

__all__ = [
    "decode_image_payload",
    "to_data_url",
    "ImageDecodeError",
    "check_health",
]
