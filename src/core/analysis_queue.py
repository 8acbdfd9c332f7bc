"""
分析タスクキュー

キャンバス分析（OCR→分類→コメント生成）を1件ずつ直列実行する上限付きFIFO
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Optional

logger = logging.getLogger(__name__)

QueueTask = Callable[[], Awaitable[None]]


class QueueState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"


class AnalysisQueue:
    """単一コンシューマの分析キュー

    保留タスクが上限に達している状態で追加されると、未開始の最も古いタスクを破棄する。
    実行中のタスクは破棄の対象にならない。
    """

    def __init__(self, max_pending: int = 4):
        if max_pending < 1:
            raise ValueError("max_pending は1以上を指定してください")
        self.max_pending = max_pending
        self._pending: Deque[QueueTask] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._closed = False

        # 統計
        self.executed_count = 0
        self.failed_count = 0
        self.evicted_count = 0

    @property
    def state(self) -> QueueState:
        if self._drain_task is not None and not self._drain_task.done():
            return QueueState.DRAINING
        return QueueState.IDLE

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, task: QueueTask) -> None:
        """タスクを追加（呼び出し元をブロックしない）

        Args:
            task: 引数なしのコルーチン関数
        """
        if self._closed:
            logger.warning("クローズ済みのキューへの追加を無視しました")
            return

        if len(self._pending) >= self.max_pending:
            self._pending.popleft()
            self.evicted_count += 1
            logger.debug(f"分析キューが上限に達したため古いタスクを破棄しました (破棄数={self.evicted_count})")

        self._pending.append(task)

        # Idle → Draining
        if self.state == QueueState.IDLE:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self):
        """キューが空になるまで1件ずつ実行"""
        while self._pending:
            task = self._pending.popleft()
            try:
                await task()
                self.executed_count += 1
            except Exception as e:
                self.failed_count += 1
                logger.error(f"キャンバス分析タスクが失敗しました: {e}", exc_info=True)

    async def join(self):
        """キューがIdleになるまで待機"""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    async def close(self):
        """保留タスクを破棄してコンシューマを停止"""
        self._closed = True
        self._pending.clear()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
        logger.debug(
            f"分析キュー停止: 実行={self.executed_count}, 失敗={self.failed_count}, 破棄={self.evicted_count}"
        )
