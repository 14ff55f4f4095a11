"""Authentication helpers for FastAPI endpoints and socket connections.

Identity is owned by an external provider. Every request must present a bearer
JWT issued by that provider; the token's ``sub`` is the opaque user id. In
development, ``X-User-Id``/``X-User-Email`` headers are accepted for local tools.
Any failure is reported as the same ``401 unauthorized``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from overlap.infra import jwt as jwt_helper
from overlap.obs import logging as obs_logging
from overlap.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	session_id: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise _unauthorized() from None
	email = payload.get("email")
	session_id = payload.get("session_id") or payload.get("sid")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		email=str(email) if email else None,
		session_id=str(session_id) if session_id else None,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user or reject uniformly."""
	if credentials and credentials.scheme.lower() == "bearer":
		user = verify_access_jwt(credentials.credentials)
	# In dev only, allow X-User-* fallback for local tools
	elif settings.is_dev() and x_user_id and x_user_id.strip():
		user = AuthenticatedUser(id=x_user_id.strip(), email=x_user_email)
	else:
		raise _unauthorized()
	obs_logging.bind_context(user_id=user.id)
	return user


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def authenticate_socket(environ: dict, auth: Any) -> AuthenticatedUser:
	"""Resolve the user behind a Socket.IO handshake.

	Raises ConnectionRefusedError when no valid identity is presented.
	"""
	scope = environ.get("asgi.scope", environ)
	auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
	if not isinstance(auth_payload, dict):
		auth_payload = {}
	token = auth_payload.get("token")
	if not token:
		auth_header = _header(scope, "authorization")
		if auth_header and auth_header.lower().startswith("bearer "):
			token = auth_header.split(" ", 1)[1]
	if token:
		try:
			return verify_access_jwt(str(token))
		except HTTPException:
			raise ConnectionRefusedError("unauthorized") from None
	if settings.is_dev():
		user_id = auth_payload.get("userId") or auth_payload.get("user_id") or _header(scope, "x-user-id")
		if user_id:
			return AuthenticatedUser(id=str(user_id))
	raise ConnectionRefusedError("unauthorized")
