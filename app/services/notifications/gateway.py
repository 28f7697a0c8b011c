"""Socket.IO notification gateway.

Operators connect with ``auth={"userId": ..., "companyId": ...}`` and are
placed in a per-user and a per-company room. Call and chat rooms are joined on
request. All pushes target rooms, so a user with several tabs open receives
every event on each socket. When a Redis URL is configured, rooms are shared
between processes through Redis pub/sub.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Set

import redis.asyncio as redis
import socketio

logger = logging.getLogger(__name__)

NAMESPACE = "/ws"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def company_room(company_id: str) -> str:
    return f"company:{company_id}"


def call_room(call_id: str) -> str:
    return f"call:{call_id}"


def chat_room(chat_id: str) -> str:
    return f"chat:{chat_id}"


class NotificationGateway:
    """Room-based real-time push to operator dashboards."""

    def __init__(
        self,
        server: Optional[socketio.AsyncServer] = None,
        redis_url: Optional[str] = None,
        cors_origin: str = "http://localhost:3000",
    ):
        self.redis_url = redis_url
        self.server = server or socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=[cors_origin],
            transports=["websocket", "polling"],
        )
        # user_id -> socket ids of this process
        self.connected_users: Dict[str, Set[str]] = {}
        self.pubsub_enabled = False
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.server.on("connect", self.handle_connect, namespace=NAMESPACE)
        self.server.on("disconnect", self.handle_disconnect, namespace=NAMESPACE)
        self.server.on("join:call", self.handle_join_call, namespace=NAMESPACE)
        self.server.on("join:chat", self.handle_join_chat, namespace=NAMESPACE)
        self.server.on("ping", self.handle_ping, namespace=NAMESPACE)

    async def attach_pubsub(self) -> bool:
        """Install the Redis client manager for multi-instance delivery.

        Degrades to in-memory (single instance) delivery when Redis is not
        configured or does not answer.
        """
        if not self.redis_url:
            logger.warning(
                "[NOTIFICATIONS] No REDIS_URL - using memory manager (single instance only)"
            )
            return False

        client = redis.from_url(self.redis_url)
        try:
            await client.ping()
        except Exception as e:
            logger.error(
                f"[NOTIFICATIONS] Redis unavailable - falling back to memory manager: {e}"
            )
            return False
        finally:
            await client.aclose()

        manager = socketio.AsyncRedisManager(self.redis_url)
        manager.set_server(self.server)
        self.server.manager = manager
        self.pubsub_enabled = True
        logger.info("[NOTIFICATIONS] Redis manager installed - sockets can scale horizontally")
        return True

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def handle_connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Dict[str, Any]] = None):
        """Admit a socket only when both user and company ids are present."""
        auth = auth or {}
        user_id = auth.get("userId")
        company_id = auth.get("companyId")

        if not user_id or not company_id:
            logger.warning(f"[NOTIFICATIONS] Unauthorized connection attempt: {sid}")
            return False

        user_id = str(user_id)
        company_id = str(company_id)

        await self.server.save_session(
            sid, {"user_id": user_id, "company_id": company_id}, namespace=NAMESPACE
        )
        self.connected_users.setdefault(user_id, set()).add(sid)

        await self.server.enter_room(sid, user_room(user_id), namespace=NAMESPACE)
        await self.server.enter_room(sid, company_room(company_id), namespace=NAMESPACE)

        logger.info(
            f"[NOTIFICATIONS] Client connected: {sid} (User: {user_id}, Company: {company_id})"
        )
        return True

    async def handle_disconnect(self, sid: str, *args):
        user_id = None
        try:
            session = await self.server.get_session(sid, namespace=NAMESPACE)
            user_id = session.get("user_id")
        except KeyError:
            pass

        if user_id:
            sockets = self.connected_users.get(user_id)
            if sockets:
                sockets.discard(sid)
                if not sockets:
                    del self.connected_users[user_id]

        logger.info(f"[NOTIFICATIONS] Client disconnected: {sid}")

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    async def handle_join_call(self, sid: str, data: Optional[Dict[str, Any]] = None):
        call_id = (data or {}).get("callId")
        if not call_id:
            return {"success": False}
        await self.server.enter_room(sid, call_room(str(call_id)), namespace=NAMESPACE)
        logger.info(f"[NOTIFICATIONS] Socket {sid} joined call room: {call_id}")
        return {"success": True}

    async def handle_join_chat(self, sid: str, data: Optional[Dict[str, Any]] = None):
        chat_id = (data or {}).get("chatId")
        if not chat_id:
            return {"success": False}
        await self.server.enter_room(sid, chat_room(str(chat_id)), namespace=NAMESPACE)
        logger.info(f"[NOTIFICATIONS] Socket {sid} joined chat room: {chat_id}")
        return {"success": True}

    async def handle_ping(self, sid: str, *args):
        return {"pong": True, "timestamp": datetime.utcnow().isoformat()}

    # ------------------------------------------------------------------
    # Push API used by services
    # ------------------------------------------------------------------

    async def _emit(self, event: str, payload: Dict[str, Any], room: str) -> None:
        await self.server.emit(event, payload, room=room, namespace=NAMESPACE)

    async def send_ai_suggestion(self, user_id: str, payload: Dict[str, Any]) -> None:
        await self._emit("ai:suggestion", payload, user_room(user_id))

    async def send_call_status_update(self, user_id: str, payload: Dict[str, Any]) -> None:
        await self._emit("call:status", payload, user_room(user_id))

    async def send_whatsapp_message(self, user_id: str, payload: Dict[str, Any]) -> None:
        await self._emit("whatsapp:message", payload, user_room(user_id))

    async def send_notification(self, user_id: str, notification: Dict[str, Any]) -> None:
        await self._emit("notification", notification, user_room(user_id))

    async def send_to_call(self, call_id: str, event: str, payload: Dict[str, Any]) -> None:
        await self._emit(event, payload, call_room(str(call_id)))

    async def broadcast_to_company(self, company_id: str, event: str, payload: Dict[str, Any]) -> None:
        await self._emit(event, payload, company_room(str(company_id)))

    def is_user_connected(self, user_id: str) -> bool:
        return user_id in self.connected_users

    def get_user_connection_count(self, user_id: str) -> int:
        return len(self.connected_users.get(user_id, ()))
