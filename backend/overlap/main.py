"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from overlap.api import chat, ops, overlap as overlap_api, profile
from overlap.api.errors import install_error_handlers
from overlap.domain.chat.sockets import ChatNamespace, set_namespace as set_chat_namespace
from overlap.domain.overlap import hashing
from overlap.domain.overlap.sockets import AlertsNamespace, set_namespace as set_alerts_namespace
from overlap.infra import postgres
from overlap.obs import init as obs_init
from overlap.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	# A missing salt would make every partner key unmatchable; refuse to boot.
	hashing.require_salt()
	await postgres.init_pool()
	logger.info("overlap api started", extra={"environment": settings.environment})
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Overlap Alerts API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
alerts_namespace = AlertsNamespace()
sio.register_namespace(alerts_namespace)
set_alerts_namespace(alerts_namespace)
chat_namespace = ChatNamespace(service=chat._service)
sio.register_namespace(chat_namespace)
set_chat_namespace(chat_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(overlap_api.router, tags=["overlap"])
app.include_router(profile.router, tags=["profile"])
app.include_router(chat.router, tags=["chat"])
app.include_router(ops.router, tags=["ops"])
