"""Socket.IO namespace pushing new overlap alerts to their owners."""

from __future__ import annotations

import logging
from typing import Optional

import socketio

from overlap.infra.auth import AuthenticatedUser, authenticate_socket
from overlap.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_namespace: "AlertsNamespace" | None = None


class AlertsNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room."""

	def __init__(self) -> None:
		super().__init__("/alerts")
		self._sessions: dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = authenticate_socket(environ, auth)
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("alerts:ack", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		user = self._sessions.pop(sid, None)
		if user:
			obs_metrics.socket_disconnected(self.namespace)
			await self.leave_room(sid, self.user_room(user.id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: AlertsNamespace | None) -> None:
	global _namespace
	_namespace = ns


async def emit_alert_new(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "alert:new")
	await _namespace.emit("alert:new", payload, room=AlertsNamespace.user_room(user_id))
