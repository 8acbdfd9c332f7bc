"""
Doodle Mentor Configuration Management

Setting.json + 環境変数による設定管理
"""

import argparse
import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class TextGenerationConfig(BaseModel):
    """テキスト生成（チャット）設定"""

    model: str = "cerebras/llama3.1-8b"
    api_key: str = ""
    api_base: str = ""  # 空ならプロバイダー既定値
    max_tokens: int = 500
    temperature: float = 0.7


class SpeechConfig(BaseModel):
    """音声合成（ElevenLabs）設定"""

    api_key: str = ""
    base_url: str = "https://api.elevenlabs.io/v1"
    model_id: str = "eleven_multilingual_v2"
    timeout_seconds: float = 30.0


class OCRConfig(BaseModel):
    """OCR（Vision）設定"""

    model: str = "mistral/pixtral-12b-2409"
    api_key: str = ""
    max_tokens: int = 1500


class AnalysisSettings(BaseModel):
    """キャンバス分析パイプライン設定"""

    max_pending_tasks: int = Field(default=4, description="分析キューの最大保留タスク数")
    size_change_threshold: int = Field(default=1000, description="有意な変化とみなすデータ長の差")
    sample_points: List[float] = Field(default_factory=lambda: [0.25, 0.5, 0.75], description="サンプル比較位置")
    sample_length: int = Field(default=100, description="サンプル比較の文字数")
    mixed_size_threshold: int = Field(default=50000, description="mixed判定に使う画像データ長")


class LoggingConfig(BaseModel):
    """ログ設定"""

    level: str = "INFO"
    file: str = "logs/doodle_mentor.log"
    max_size_mb: int = 10
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ログ長制限関連
    enable_truncation: bool = True
    truncate_marker: str = "【切り詰め】"
    max_message_length: int = 2000  # デフォルト値
    level_specific_lengths: Dict[str, int] = {
        "DEBUG": 200,
        "INFO": 400,
        "WARNING": 400,
        "ERROR": 10000,
        "CRITICAL": 10000
    }


class AppConfig(BaseModel):
    """Doodle Mentor統合設定（Setting.json形式）"""

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="アップロード上限 (10MB)")

    text_generation: TextGenerationConfig = Field(default_factory=TextGenerationConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def apply_environment(self) -> "AppConfig":
        """未設定のAPIキー・ポートを環境変数で補完する"""
        if not self.text_generation.api_key:
            self.text_generation.api_key = os.environ.get("CEREBRAS_API_KEY", "")
        if not self.text_generation.api_base:
            self.text_generation.api_base = os.environ.get("CEREBRAS_BASE_URL", "")
        if not self.speech.api_key:
            self.speech.api_key = os.environ.get("ELEVENLABS_API_KEY", "")
        if os.environ.get("ELEVENLABS_BASE_URL"):
            self.speech.base_url = os.environ["ELEVENLABS_BASE_URL"]
        if not self.ocr.api_key:
            self.ocr.api_key = os.environ.get("MISTRAL_API_KEY", "")
        if os.environ.get("PORT"):
            try:
                self.port = int(os.environ["PORT"])
            except ValueError:
                raise ConfigurationError(f"PORTが数値ではありません: {os.environ['PORT']}")
        return self

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "AppConfig":
        """設定ファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス（指定がない場合は自動検索、見つからなければ既定値）

        Returns:
            AppConfig: 設定オブジェクト
        """
        load_dotenv()

        if config_path is None:
            config_path = find_config_file()

        if config_path is None:
            logger.info("Setting.jsonが見つからないため既定値で起動します")
            return cls().apply_environment()

        # 設定ファイル読み込み
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"設定ファイルの読み込みに失敗しました: {config_path}: {e}")

        # 環境変数置換
        config_data = substitute_env_variables(config_data)

        try:
            config = cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"設定ファイルの検証に失敗しました: {e}")

        logger.info(f"設定ファイルを読み込みました: {config_path}")
        return config.apply_environment()


class ConfigurationError(Exception):
    """設定関連エラー"""

    pass


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """コマンドライン引数を解析する"""
    parser = argparse.ArgumentParser(description="Doodle Mentor AIバックエンド")
    parser.add_argument("--config", "-c", help="設定ファイルパス")
    parser.add_argument("--port", "-p", type=int, help="待ち受けポート（設定ファイルより優先）")
    parser.add_argument("--check-health", metavar="URL", help="起動中サーバーのヘルスチェックのみ実行する")
    return parser.parse_args(argv)


def find_config_file() -> Optional[str]:
    """設定ファイルを自動検索する

    検索順序:
    1. 環境変数 DOODLE_MENTOR_CONFIG
    2. <project>/UserData/Setting.json
    3. <project>/../UserData/Setting.json

    Returns:
        Optional[str]: 設定ファイルパス（見つからない場合はNone）
    """
    env_path = os.environ.get("DOODLE_MENTOR_CONFIG")
    if env_path:
        if not Path(env_path).exists():
            raise ConfigurationError(f"DOODLE_MENTOR_CONFIGのファイルが見つかりません: {env_path}")
        return env_path

    # 実行ディレクトリの決定
    if getattr(sys, "frozen", False):
        # PyInstallerなどで固められたexeの場合
        base_dir = Path(sys.executable).parent
    else:
        # 通常のPythonスクリプトとして実行された場合
        base_dir = Path(__file__).parent.parent.parent

    config_paths = [
        base_dir / "UserData" / "Setting.json",
        base_dir.parent / "UserData" / "Setting.json",
    ]

    for config_path in config_paths:
        if config_path.exists():
            return str(config_path)

    return None


def substitute_env_variables(data: Any) -> Any:
    """設定データ内の環境変数を置換する

    ${VAR_NAME} 形式の環境変数参照を実際の値に置き換える

    Args:
        data: 設定データ（dict, list, str等）

    Returns:
        Any: 環境変数が置換された設定データ
    """
    if isinstance(data, str):
        def replace_env_var(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))  # 見つからない場合は元の文字列を返す

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, data)

    elif isinstance(data, dict):
        return {key: substitute_env_variables(value) for key, value in data.items()}

    elif isinstance(data, list):
        return [substitute_env_variables(item) for item in data]

    else:
        return data
