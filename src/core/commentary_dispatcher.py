"""
ライブコメント配信

分析結果からプロンプトを作り、テキスト生成の結果を登録済みオブザーバーへ渡す
"""

import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Union

from models.analysis_models import AnalysisResult, Commentary

from .content_classifier import classify_content
from .personalities import PersonalityId
from .prompt_builder import build_commentary_prompt

logger = logging.getLogger(__name__)

CommentaryObserver = Callable[[Commentary], Union[None, Awaitable[None]]]


class TextGenerator(Protocol):
    async def generate(self, messages: List[Dict[str, str]], personality: Union[PersonalityId, str]) -> str:
        ...


class CommentaryDispatcher:
    """単一スロットのオブザーバーへライブコメントを配信する

    オブザーバーの登録は最後の1件のみ有効。
    テキスト生成に失敗した場合はログのみでオブザーバーは呼ばない（リトライなし）。
    """

    def __init__(self, text_generator: TextGenerator, personality: Union[PersonalityId, str] = PersonalityId.CALM):
        self.text_generator = text_generator
        self.personality = PersonalityId(personality)
        self._observer: Optional[CommentaryObserver] = None

    def set_observer(self, observer: Optional[CommentaryObserver]):
        self._observer = observer

    def set_personality(self, personality: Union[PersonalityId, str]):
        self.personality = PersonalityId(personality)

    @property
    def has_observer(self) -> bool:
        return self._observer is not None

    async def dispatch(self, analysis: AnalysisResult) -> Optional[Commentary]:
        """分析結果からライブコメントを生成して配信

        Args:
            analysis: キャンバス分析結果

        Returns:
            Optional[Commentary]: 配信したコメント（未配信ならNone）
        """
        observer = self._observer
        if observer is None:
            logger.debug("オブザーバー未登録のためライブコメントを生成しません")
            return None

        classification = classify_content(analysis.extracted_text, analysis.analysis_type)
        prompt = build_commentary_prompt(analysis.extracted_text, classification.trigger_reason)

        try:
            message = await self.text_generator.generate(
                [{"role": "user", "content": prompt}],
                self.personality,
            )
        except Exception as e:
            logger.error(f"ライブコメントの生成に失敗しました: {e}")
            return None

        commentary = Commentary(
            message=message,
            type=classification.commentary_type,
            trigger_reason=classification.trigger_reason,
        )
        logger.info(
            f"ライブコメント生成: reason={commentary.trigger_reason.value}, type={commentary.type.value}"
        )

        result = observer(commentary)
        if inspect.isawaitable(result):
            await result
        return commentary
