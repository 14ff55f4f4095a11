"""Access token verification for the external identity provider.

Tokens are HS256 JWTs signed with the provider's shared secret. The provider
sets ``sub`` to the opaque user id and ``aud`` to the configured audience.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from overlap.settings import settings


def _secret() -> str:
	secret = settings.auth_jwt_secret
	if not secret:
		raise InvalidTokenError("jwt_secret_unset")
	return secret


def encode_access(payload: dict[str, object], *, ttl_seconds: int = 3600) -> str:
	"""Encode an access token the way the identity provider does (local tools and tests)."""
	now = int(time.time())
	body: Dict[str, Any] = {"aud": settings.auth_jwt_audience, "iat": now, "exp": now + ttl_seconds}
	if settings.auth_jwt_issuer:
		body["iss"] = settings.auth_jwt_issuer
	body.update(payload)
	return jwt.encode(body, _secret(), algorithm="HS256")


def decode_access(token: str) -> dict[str, object]:
	"""Decode and validate an access token.

	Raises jwt.InvalidTokenError subclasses on failure.
	"""
	options = {"require": ["exp", "sub"]}
	kwargs: Dict[str, Any] = {}
	if settings.auth_jwt_issuer:
		kwargs["issuer"] = settings.auth_jwt_issuer
	payload = jwt.decode(
		token,
		_secret(),
		algorithms=["HS256"],
		audience=settings.auth_jwt_audience,
		leeway=5,
		options=options,
		**kwargs,
	)
	if not str(payload.get("sub") or "").strip():
		raise InvalidTokenError("missing_claim:sub")
	return payload  # type: ignore[return-value]
