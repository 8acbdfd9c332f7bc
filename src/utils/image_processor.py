"""
Doodle Mentor 画像処理モジュール

data URL とバイト列の相互変換、Vision API用メッセージの構築
"""

import base64
import binascii
import logging
import re
from typing import Dict, List, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*?);base64,(?P<data>.*)$", re.DOTALL)

# 先頭バイトによる簡易判定
_MAGIC_NUMBERS = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"RIFF", "image/webp"),
)


class ImageDecodeError(ValueError):
    """画像データの解析失敗"""

    pass


def sniff_mime_type(image_bytes: bytes, default: str = DEFAULT_MIME_TYPE) -> str:
    """先頭バイトからMIMEタイプを推定"""
    for magic, mime_type in _MAGIC_NUMBERS:
        if image_bytes.startswith(magic):
            return mime_type
    return default


def decode_image_payload(payload: Union[str, bytes]) -> Tuple[bytes, str]:
    """スナップショットをバイト列とMIMEタイプに変換

    Args:
        payload: data URL文字列、生Base64文字列、または画像バイト列

    Returns:
        Tuple[bytes, str]: 画像バイト列とMIMEタイプ

    Raises:
        ImageDecodeError: Base64として解釈できない場合
    """
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload), sniff_mime_type(bytes(payload))

    mime_type = None
    encoded = payload.strip()
    match = _DATA_URL_PATTERN.match(encoded)
    if match:
        mime_type = match.group("mime")
        encoded = match.group("data")

    try:
        image_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Base64画像データの解析に失敗しました: {e}")

    return image_bytes, mime_type or sniff_mime_type(image_bytes)


def to_data_url(image_bytes: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    """画像バイト列をdata URLに変換"""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_vision_content(instruction: str, image_bytes: bytes, mime_type: str) -> List[Dict]:
    """Vision API用のユーザーメッセージコンテンツを構築

    Args:
        instruction: 画像と一緒に渡す指示文
        image_bytes: 画像バイト列
        mime_type: 画像のMIMEタイプ

    Returns:
        List[Dict]: text + image_url のコンテンツ配列
    """
    return [
        {"type": "text", "text": instruction},
        {"type": "image_url", "image_url": {"url": to_data_url(image_bytes, mime_type)}},
    ]
