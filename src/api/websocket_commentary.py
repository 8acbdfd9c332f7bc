"""
Doodle Mentor ライブコメントWebSocket API

ブラウザセッションごとにキャンバス分析サービスを持ち、生成されたコメントをプッシュする
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from core.canvas_analysis import CanvasAnalysisService
from models.analysis_models import AnalysisResult, Commentary, CanvasSnapshot
from models.api_models import CommentaryClientMessage
from utils.image_processor import ImageDecodeError, decode_image_payload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ws", tags=["websocket"])


def _dump_analysis(analysis: Optional[AnalysisResult]) -> Optional[dict]:
    if analysis is None:
        return None
    return analysis.model_dump(mode="json", by_alias=True)


class CommentarySessionManager:
    """ライブコメントセッション管理クラス"""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.active_sessions: Dict[str, CanvasAnalysisService] = {}
        logger.info("CommentarySessionManager初期化完了")

    @property
    def active_session_count(self) -> int:
        return len(self.active_sessions)

    async def connect(self, client_id: str, websocket: WebSocket, app):
        """WebSocket接続処理"""
        await websocket.accept()

        # 同じclient_idの古い接続は閉じてセッションを破棄
        old_websocket = self.active_connections.get(client_id)
        if client_id in self.active_sessions:
            await self.disconnect(client_id)
        if old_websocket is not None and old_websocket is not websocket:
            try:
                await old_websocket.close(code=1000, reason="別の接続に置き換えられました")
            except Exception as e:
                logger.warning(f"古い接続のクローズに失敗: client_id={client_id}, error={e}")

        service = app.create_analysis_service()

        async def send_commentary(commentary: Commentary):
            try:
                await websocket.send_json({
                    "type": "commentary",
                    "data": commentary.model_dump(mode="json", by_alias=True),
                })
            except Exception as e:
                logger.warning(f"ライブコメント送信失敗: client_id={client_id}, error={e}")

        service.set_commentary_callback(send_commentary)
        self.active_connections[client_id] = websocket
        self.active_sessions[client_id] = service
        logger.info(f"WebSocket接続確立: client_id={client_id}")

    def is_current(self, client_id: str, websocket: WebSocket) -> bool:
        """client_idに登録中の接続かどうか"""
        return self.active_connections.get(client_id) is websocket

    async def disconnect(self, client_id: str, websocket: Optional[WebSocket] = None):
        """WebSocket切断処理（websocket指定時は同一接続のみ）"""
        if websocket is not None and not self.is_current(client_id, websocket):
            return
        self.active_connections.pop(client_id, None)
        service = self.active_sessions.pop(client_id, None)
        if service is not None:
            await service.close()
        logger.info(f"WebSocket切断処理完了: client_id={client_id}")

    async def handle_message(self, client_id: str, websocket: WebSocket, message: Any):
        """WebSocketメッセージ処理（置き換え済みの接続からのメッセージは破棄）"""
        service = self.active_sessions.get(client_id)
        if service is None or not self.is_current(client_id, websocket):
            logger.warning(f"接続が見つかりません: client_id={client_id}")
            return

        if not isinstance(message, dict):
            await self._send_error(websocket, "メッセージはJSONオブジェクトで送信してください")
            return

        try:
            request = CommentaryClientMessage(**message)
        except ValidationError as e:
            await self._send_error(websocket, f"不正なメッセージです: {e.errors()[0].get('msg', '')}")
            return

        try:
            await self._handle_action(websocket, service, request)
        except Exception as e:
            logger.error(f"メッセージ処理エラー: {e}", exc_info=True)
            await self._send_error(websocket, str(e))

    async def _handle_action(self, websocket: WebSocket, service: CanvasAnalysisService,
                             request: CommentaryClientMessage):
        if request.personality is not None:
            service.set_personality(request.personality)

        if request.action == "set_personality":
            await websocket.send_json({"type": "personality", "data": service.dispatcher.personality.value})
            return

        if not request.image:
            await self._send_error(websocket, f"{request.action} には image が必要です")
            return

        if request.action == "analyze":
            cached = service.analyze_canvas(CanvasSnapshot(data=request.image))
            await websocket.send_json({"type": "analysis", "data": _dump_analysis(cached)})

        elif request.action == "upload":
            try:
                image_bytes, mime_type = decode_image_payload(request.image)
            except ImageDecodeError as e:
                await self._send_error(websocket, str(e))
                return
            analysis = await service.analyze_uploaded_image(image_bytes, mime_type)
            await websocket.send_json({"type": "upload_analysis", "data": _dump_analysis(analysis)})

    async def _send_error(self, websocket: WebSocket, error_message: str):
        """エラーメッセージ送信"""
        try:
            await websocket.send_json({
                "type": "error",
                "data": {
                    "message": error_message,
                    "code": "BAD_REQUEST"
                }
            })
        except Exception as e:
            logger.error(f"エラーメッセージ送信失敗: {e}")

    async def shutdown(self):
        """シャットダウン処理"""
        logger.info("CommentarySessionManager シャットダウン開始")
        for client_id in list(self.active_sessions):
            await self.disconnect(client_id)
        logger.info("CommentarySessionManager シャットダウン完了")


# グローバルマネージャー
commentary_manager = CommentarySessionManager()


@router.websocket("/commentary/{client_id}")
async def websocket_commentary(client_id: str, websocket: WebSocket):
    """ライブコメントWebSocketエンドポイント"""
    app = getattr(websocket.app.state, "core_app", None)
    if app is None:
        logger.error("アプリケーションインスタンスが見つかりません")
        await websocket.close(code=1011, reason="アプリケーション初期化エラー")
        return

    await commentary_manager.connect(client_id, websocket, app)

    try:
        while True:
            text = await websocket.receive_text()
            if not commentary_manager.is_current(client_id, websocket):
                logger.info(f"置き換え済みの接続のため受信を終了します: client_id={client_id}")
                break
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await commentary_manager._send_error(websocket, "JSONとして解析できないメッセージです")
                continue
            await commentary_manager.handle_message(client_id, websocket, message)

    except WebSocketDisconnect:
        logger.info(f"WebSocket正常切断: client_id={client_id}")
    except Exception as e:
        logger.error(f"WebSocketエラー: client_id={client_id}, error={e}", exc_info=True)
    finally:
        await commentary_manager.disconnect(client_id, websocket)


def get_commentary_manager() -> CommentarySessionManager:
    """セッションマネージャー取得（ヘルスチェック・シャットダウン用）"""
    return commentary_manager
