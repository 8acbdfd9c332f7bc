"""
Doodle Mentor メインアプリケーション

お絵描きキャンバス + AI講師のバックエンドサーバー
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, List

# Pythonパスにsrcディレクトリを追加
sys.path.insert(0, str(Path(__file__).parent))

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

# ログディレクトリ
log_dir = Path(__file__).parent.parent / "logs"


class HealthCheckFilter(logging.Filter):
    """ヘルスチェックリクエストを除外するフィルター"""
    def filter(self, record):
        # /health, /api/health へのアクセスログを除外
        return not (hasattr(record, 'getMessage') and '/health' in record.getMessage())


class TruncatingFormatter(logging.Formatter):
    """メッセージ長を制限するカスタムフォーマッター（レベル別対応）"""

    def __init__(self, fmt=None, datefmt=None, max_length=1000, level_specific_lengths=None, truncate_marker="...", enable_truncation=True):
        super().__init__(fmt, datefmt)
        self.max_length = max_length  # デフォルト値
        self.level_specific_lengths = level_specific_lengths or {}
        self.truncate_marker = truncate_marker
        self.enable_truncation = enable_truncation

    def format(self, record):
        formatted = super().format(record)

        if self.enable_truncation:
            # レベル別制限を取得（なければデフォルト値を使用）
            max_length = self.level_specific_lengths.get(record.levelname, self.max_length)

            if len(formatted) > max_length:
                truncate_point = max_length - len(self.truncate_marker)
                formatted = formatted[:truncate_point] + self.truncate_marker

        return formatted


def setup_logging(log_config=None):
    """ログ設定を初期化"""
    if log_config is None:
        app_instance = get_app_instance()
        if app_instance and app_instance.config:
            log_config = app_instance.config.logging
        else:
            from core.config_manager import LoggingConfig
            log_config = LoggingConfig()

    formatter = TruncatingFormatter(
        fmt=log_config.format,
        max_length=log_config.max_message_length,
        level_specific_lengths=log_config.level_specific_lengths,
        truncate_marker=log_config.truncate_marker,
        enable_truncation=log_config.enable_truncation
    )
    level = getattr(logging, log_config.level.upper(), logging.INFO)

    # ルートロガー設定
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # コンソールハンドラー
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # ファイルハンドラー
    try:
        from logging.handlers import RotatingFileHandler
        log_dir.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / log_config.file.split('/')[-1],  # ファイル名部分のみ使用
            maxBytes=log_config.max_size_mb * 1024 * 1024,
            backupCount=log_config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except Exception as e:
        print(f"ファイルロガーの設定に失敗しました: {e}")

    # uvicornのログレベル設定
    logging.getLogger("uvicorn").setLevel(logging.INFO)

    # uvicorn.accessにヘルスチェックフィルターを追加
    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.setLevel(logging.INFO)
    uvicorn_access_logger.addFilter(HealthCheckFilter())

    # httpログレベル設定
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore.http11").setLevel(logging.INFO)
    logging.getLogger("httpcore.connection").setLevel(logging.WARNING)

    # LiteLLMのログレベル設定
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM Router").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM Proxy").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)

# コンポーネントのインポート
from core.config_manager import AppConfig, ConfigurationError, parse_args
from core.analysis_queue import AnalysisQueue
from core.canvas_analysis import CanvasAnalysisService
from core.commentary_dispatcher import CommentaryDispatcher
from models.api_models import ErrorResponse
from api.health import router as health_router
from api.personalities import router as personalities_router
from api.chat import router as chat_router
from api.analysis import router as analysis_router
from api.websocket_commentary import router as websocket_router


class DoodleMentorApp:
    """Doodle Mentorメインアプリケーション"""

    def __init__(self, config: Optional[AppConfig] = None):
        self.app: Optional[FastAPI] = None
        self.config: Optional[AppConfig] = config
        self.text_client = None
        self.speech_client = None
        self.ocr_client = None
        self.uvicorn_server: Optional[uvicorn.Server] = None
        self._shutdown_event = asyncio.Event()

        # グローバルインスタンス設定
        global _app_instance
        _app_instance = self

    async def initialize(self, config_path: Optional[str] = None):
        """アプリケーション初期化"""
        try:
            if self.config is None:
                self.config = AppConfig.load(config_path)
            setup_logging(self.config.logging)

            logger.info("Doodle Mentorを初期化しています...")
            self._create_clients()
            self._warn_missing_api_keys()
            self.build_app()

            logger.info("Doodle Mentor初期化完了")

        except Exception as e:
            logger.error(f"アプリケーション初期化エラー: {e}")
            raise

    def _create_clients(self):
        """外部サービスのクライアントを生成"""
        from core.litellm_wrapper import LiteLLMConfig, LiteLLMWrapper
        from core.ocr_client import VisionOCRClient
        from core.speech_client import ElevenLabsClient

        self.text_client = LiteLLMWrapper(LiteLLMConfig.from_app_config(self.config.text_generation))
        self.speech_client = ElevenLabsClient.from_app_config(self.config.speech)
        self.ocr_client = VisionOCRClient.from_app_config(self.config.ocr)

    def _warn_missing_api_keys(self):
        if not self.config.text_generation.api_key:
            logger.warning("⚠️ CEREBRAS_API_KEY が設定されていません")
        if not self.config.speech.api_key:
            logger.warning("⚠️ ELEVENLABS_API_KEY が設定されていません")
        if not self.config.ocr.api_key:
            logger.warning("⚠️ MISTRAL_API_KEY が設定されていません")

    def build_app(self) -> FastAPI:
        """FastAPIアプリケーション作成"""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            # 終了時処理
            try:
                await self._cleanup_resources()
            except Exception as e:
                logger.error(f"リソースクリーンアップエラー: {e}")

        self.app = FastAPI(
            title="Doodle Mentor",
            description="お絵描きキャンバス + AI講師バックエンド",
            version="1.0.0",
            lifespan=lifespan
        )

        # CORS設定
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # 不正なリクエストはパイプラインに入れずに400で返す
        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            errors = exc.errors()
            logger.warning(f"リクエスト検証エラー: path={request.url.path}, errors={len(errors)}")
            error_response = ErrorResponse(
                error="bad_request",
                message="Invalid request",
                details={"errors": [
                    {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
                    for err in errors
                ]}
            )
            return JSONResponse(status_code=400, content=error_response.model_dump())

        # APIルーター追加
        self.app.include_router(health_router)
        self.app.include_router(personalities_router)
        self.app.include_router(chat_router)
        self.app.include_router(analysis_router)
        self.app.include_router(websocket_router)

        # FastAPIのstate経由でアプリケーションインスタンスを保存
        self.app.state.core_app = self
        return self.app

    def create_analysis_service(self) -> CanvasAnalysisService:
        """ライブコメントセッション用の分析サービスを生成"""
        settings = self.config.analysis
        return CanvasAnalysisService(
            ocr_client=self.ocr_client,
            dispatcher=CommentaryDispatcher(self.text_client),
            queue=AnalysisQueue(max_pending=settings.max_pending_tasks),
            settings=settings,
        )

    async def start_server(self):
        """サーバー起動"""
        try:
            port = self.config.port
            logger.info(f"Doodle Mentorサーバーを起動しています... (ポート: {port})")

            config = uvicorn.Config(
                app=self.app,
                host=self.config.host,
                port=port,
                log_level="info",
                access_log=True
            )

            self.uvicorn_server = uvicorn.Server(config)
            logger.info(f"🚀 Doodle Mentorサーバーが起動しました: http://127.0.0.1:{port}")
            logger.info(f"🔗 ヘルスチェック: http://127.0.0.1:{port}/health")
            await self.uvicorn_server.serve()

        except Exception as e:
            logger.error(f"サーバー起動エラー: {e}")
            raise

    async def _cleanup_resources(self):
        """リソースクリーンアップ処理"""
        try:
            logger.info("リソースクリーンアップを開始...")

            # ライブコメントセッション停止
            try:
                from api.websocket_commentary import get_commentary_manager
                await get_commentary_manager().shutdown()
            except Exception as e:
                logger.warning(f"ライブコメントセッション停止エラー: {e}")

            if self.speech_client is not None and hasattr(self.speech_client, "aclose"):
                await self.speech_client.aclose()

            logger.info("リソースクリーンアップ完了")

        except Exception as e:
            logger.error(f"リソースクリーンアップエラー: {e}")

    async def shutdown(self):
        """アプリケーションシャットダウン"""
        try:
            logger.info("Doodle Mentorをシャットダウンしています...")

            self._shutdown_event.set()

            # Uvicornサーバーのgraceful shutdown
            if self.uvicorn_server:
                self.uvicorn_server.should_exit = True
                await asyncio.sleep(0.1)

            logger.info("Doodle Mentorシャットダウン完了")

        except Exception as e:
            logger.error(f"シャットダウンエラー: {e}")


# グローバルインスタンス
_app_instance: Optional[DoodleMentorApp] = None


def get_app_instance() -> Optional[DoodleMentorApp]:
    """アプリケーションインスタンスを取得"""
    return _app_instance


async def signal_handler(signum, frame):
    """シグナルハンドラー"""
    logger.info(f"シグナル受信: {signum}")
    if _app_instance:
        await _app_instance.shutdown()


async def run_health_check(url: str) -> int:
    """起動中サーバーのヘルスチェック（終了コードを返す）"""
    from utils.health_probe import check_health

    reachable = await check_health(url)
    print("OK" if reachable else "UNREACHABLE")
    return 0 if reachable else 1


async def main(argv: Optional[List[str]] = None) -> int:
    """メイン実行関数"""
    args = parse_args(argv)

    if args.check_health:
        return await run_health_check(args.check_health)

    app = None
    try:
        config = AppConfig.load(args.config)
        if args.port:
            config.port = args.port

        app = DoodleMentorApp(config)

        # シグナルハンドラー設定
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in [signal.SIGTERM, signal.SIGINT]:
                loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(signal_handler(s, None)))

        await app.initialize()
        await app.start_server()

    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt受信")
    except ConfigurationError as e:
        logger.error(f"設定エラー: {e}")
        return 1
    except Exception as e:
        logger.error(f"予期しないエラー: {e}")
        return 1
    finally:
        if app:
            await app.shutdown()
    return 0


def cli():
    """コンソールスクリプト用エントリーポイント"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("アプリケーションが中断されました")


if __name__ == "__main__":
    cli()
