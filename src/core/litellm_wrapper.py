"""
LiteLLM統合用ラッパークラス

テキスト生成（チャット・ライブコメント）をLiteLLM経由で呼び出す
"""

import logging
import os
from typing import Dict, Any, List, Optional, Union

from .personalities import PersonalityId, get_personality

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """テキスト生成失敗"""

    pass


class LiteLLMConfig:
    """LiteLLM設定クラス"""

    def __init__(self, model_name: str, api_key: str,
                 extra_config: Dict[str, Any] = None, **kwargs):
        self.model_name_or_path = model_name
        self.api_key = api_key
        self.api_base = kwargs.get('api_base') or None
        self.max_tokens = kwargs.get('max_tokens', 500)
        self.temperature = kwargs.get('temperature', 0.7)
        self.extra_config = extra_config or {}

        # プロバイダー名を自動抽出（例: "cerebras/llama3.1-8b" → "cerebras"）
        self.provider = model_name.split('/')[0] if '/' in model_name else 'openai'

    @classmethod
    def from_app_config(cls, text_config) -> "LiteLLMConfig":
        """TextGenerationConfigから生成"""
        return cls(
            model_name=text_config.model,
            api_key=text_config.api_key,
            api_base=text_config.api_base,
            max_tokens=text_config.max_tokens,
            temperature=text_config.temperature,
        )


def setup_provider_api_key(provider: str, api_key: str):
    """プロバイダー別環境変数設定"""
    if not api_key:
        return
    if provider == "openai":
        os.environ["OPENAI_API_KEY"] = api_key
    elif provider == "cerebras":
        os.environ["CEREBRAS_API_KEY"] = api_key
    elif provider == "mistral":
        os.environ["MISTRAL_API_KEY"] = api_key
    elif provider == "anthropic":
        os.environ["ANTHROPIC_API_KEY"] = api_key
    elif provider == "gemini":
        os.environ["GEMINI_API_KEY"] = api_key
    elif provider == "xai":
        os.environ["XAI_API_KEY"] = api_key


class LiteLLMWrapper:
    """
    LiteLLMラッパークラス

    パーソナリティのシステムプロンプトを付与して単発のチャット補完を行う
    """

    def __init__(self, config: LiteLLMConfig):
        self.config = config

        setup_provider_api_key(self.config.provider, self.config.api_key)

        try:
            import litellm
            self.litellm = litellm
            litellm.suppress_debug_info = True
        except ImportError:
            raise RuntimeError("LiteLLMがインストールされていません。pip install litellm でインストールしてください。")

        logger.info(f"LiteLLMWrapper初期化完了: model={self.config.model_name_or_path}")

    async def generate(self, messages: List[Dict[str, str]],
                       personality: Union[PersonalityId, str] = PersonalityId.CALM, **kwargs) -> str:
        """
        LLMレスポンス生成（エラー時はGenerationErrorを送出）

        Args:
            messages: user/assistantのメッセージリスト
            personality: パーソナリティID
            **kwargs: 追加パラメータ

        Returns:
            str: 生成されたレスポンス
        """
        profile = get_personality(personality)
        full_messages = [{"role": "system", "content": profile.system_prompt}, *messages]

        params: Dict[str, Any] = {
            "model": self.config.model_name_or_path,
            "messages": full_messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "stream": False,
        }
        if self.config.api_base:
            params["api_base"] = self.config.api_base
        params.update(self.config.extra_config)
        params.update(kwargs)

        try:
            response = await self.litellm.acompletion(**params)
            response_content = response.choices[0].message.content or ""

            logger.debug(f"LiteLLM Response: model={getattr(response, 'model', None)}, usage={getattr(response, 'usage', None)}")
            return response_content

        except Exception as e:
            self._log_detailed_error(e, "generate", full_messages, kwargs)
            raise GenerationError("Failed to generate AI response") from e

    def _log_detailed_error(self, error: Exception, operation: str,
                            messages: List[Dict[str, str]], kwargs: Dict[str, Any]):
        """詳細なエラー情報をログ出力"""
        error_info = {
            "operation": operation,
            "provider": self.config.provider,
            "model": self.config.model_name_or_path,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "message_count": len(messages),
            "kwargs": {k: v for k, v in kwargs.items() if k not in ['api_key']},  # APIキーを除外
        }
        log_provider_error(error, error_info)


def log_provider_error(error: Exception, error_info: Optional[Dict[str, Any]] = None):
    """プロバイダーエラーを分類してログ出力"""
    error_info = error_info or {"error_type": type(error).__name__, "error_message": str(error)}
    error_str = str(error)
    if "401" in error_str or "Authentication" in error_str:
        logger.error(f"🔐 認証エラー - APIキーを確認してください: {error_info}")
    elif "429" in error_str or "rate limit" in error_str.lower():
        logger.error(f"⏱️ レート制限エラー - 使用量を確認してください: {error_info}")
    elif "timeout" in error_str.lower() or "TimeoutError" in error_str:
        logger.error(f"⏰ タイムアウトエラー - ネットワーク状況を確認してください: {error_info}")
    elif any(code in error_str for code in ["502", "503", "504"]):
        logger.error(f"🖥️ サーバーエラー - プロバイダー側の一時的な問題の可能性: {error_info}")
    elif "quota" in error_str.lower() or "limit" in error_str.lower():
        logger.error(f"💳 クォータ・制限エラー - 使用制限を確認してください: {error_info}")
    else:
        logger.error(f"❓ 予期しないエラー: {error_info}", exc_info=True)
