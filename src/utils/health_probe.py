"""
Doodle Mentor ヘルスチェックプローブ

起動中のバックエンドに /health で到達できるか確認する
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


async def check_health(base_url: str, timeout: float = 5.0,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """
    バックエンドの到達確認

    Args:
        base_url: サーバーのベースURL（例: http://127.0.0.1:3001）
        timeout: タイムアウト（秒）

    Returns:
        bool: 2xx応答ならTrue
    """
    url = f"{base_url.rstrip('/')}/health"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
        return response.is_success
    except httpx.HTTPError as e:
        logger.error(f"ヘルスチェック失敗: {url}: {e}")
        return False
