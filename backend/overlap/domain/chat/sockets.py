"""Socket.IO namespace streaming anonymous chat messages per room."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, Optional

import socketio

from overlap.domain.chat.exceptions import ChatError
from overlap.domain.common.errors import StorageFailure
from overlap.infra.auth import AuthenticatedUser, authenticate_socket
from overlap.obs import metrics as obs_metrics

if TYPE_CHECKING:
	from overlap.domain.chat.service import ChatService

logger = logging.getLogger(__name__)

_namespace: "ChatNamespace" | None = None


class ChatNamespace(socketio.AsyncNamespace):
	"""Clients join a room channel only after the membership check passes."""

	def __init__(self, service: "ChatService") -> None:
		super().__init__("/chat")
		self._sessions: Dict[str, AuthenticatedUser] = {}
		self._service = service

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = authenticate_socket(environ, auth)
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user
		await self.emit("chat:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		if self._sessions.pop(sid, None):
			obs_metrics.socket_disconnected(self.namespace)

	async def on_room_join(self, sid: str, payload: Any = None) -> dict:
		obs_metrics.socket_event(self.namespace, "room_join")
		user = self._sessions.get(sid)
		if not user:
			return {"ok": False, "error": "unauthorized"}
		raw = payload.get("room_id") if isinstance(payload, dict) else None
		try:
			room_id = str(uuid.UUID(str(raw)))
		except ValueError:
			return {"ok": False, "error": "room_not_found"}
		try:
			await self._service.ensure_member(user.id, room_id)
		except ChatError as exc:
			return {"ok": False, "error": exc.reason}
		except StorageFailure:
			logger.exception("room_join membership check failed", extra={"room_id": room_id})
			return {"ok": False, "error": "storage_failure"}
		await self.enter_room(sid, self.room_channel(room_id))
		return {"ok": True, "room_id": room_id}

	async def on_room_leave(self, sid: str, payload: Any = None) -> dict:
		obs_metrics.socket_event(self.namespace, "room_leave")
		raw = payload.get("room_id") if isinstance(payload, dict) else None
		if raw:
			await self.leave_room(sid, self.room_channel(str(raw)))
		return {"ok": True}

	@staticmethod
	def room_channel(room_id: str) -> str:
		return f"room:{room_id}"


def set_namespace(ns: ChatNamespace | None) -> None:
	global _namespace
	_namespace = ns


async def emit_room_message(room_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "chat:message")
	await _namespace.emit("chat:message", payload, room=ChatNamespace.room_channel(room_id))
