import time

import jwt
import pytest

from overlap.infra import jwt as jwt_helper
from overlap.infra.auth import authenticate_socket
from overlap.settings import settings


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_valid_token_authenticates_outside_dev(api_client, memory_services, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    token = jwt_helper.encode_access({"sub": "user-a", "email": "a@example.com"})
    response = await api_client.get("/profile", headers=_bearer(token))
    assert response.status_code == 200
    assert response.json()["user"] == {"id": "user-a", "email": "a@example.com"}


@pytest.mark.asyncio
async def test_bearer_token_wins_over_dev_headers(api_client, memory_services):
    token = jwt_helper.encode_access({"sub": "user-a"})
    headers = {**_bearer(token), "X-User-Id": "user-b"}
    response = await api_client.get("/profile", headers=headers)
    assert response.json()["user"]["id"] == "user-a"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "claims,secret",
    [
        ({"sub": "user-a", "exp": int(time.time()) - 60}, None),
        ({"sub": "user-a", "aud": "someone-else"}, None),
        ({"sub": "user-a"}, "a-completely-different-signing-secret-0123"),
        ({"sub": ""}, None),
    ],
)
async def test_invalid_tokens_are_uniformly_unauthorized(api_client, memory_services, claims, secret):
    now = int(time.time())
    body = {"aud": settings.auth_jwt_audience, "iat": now, "exp": now + 300, **claims}
    token = jwt.encode(body, secret or settings.auth_jwt_secret, algorithm="HS256")
    response = await api_client.post("/declare", json={"partner": "p@example.com"}, headers=_bearer(token))
    assert response.status_code == 401
    assert response.json()["detail"] == "unauthorized"


@pytest.mark.asyncio
async def test_garbage_token_is_unauthorized(api_client, memory_services):
    response = await api_client.get("/alerts", headers=_bearer("not.a.jwt"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_missing_secret_rejects_every_token(api_client, memory_services, monkeypatch):
    token = jwt_helper.encode_access({"sub": "user-a"})
    monkeypatch.setattr(settings, "auth_jwt_secret", None)
    response = await api_client.get("/alerts", headers=_bearer(token))
    assert response.status_code == 401


def test_issuer_is_enforced_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "auth_jwt_issuer", "https://id.example.com")
    token = jwt_helper.encode_access({"sub": "user-a"})
    assert jwt_helper.decode_access(token)["iss"] == "https://id.example.com"
    monkeypatch.setattr(settings, "auth_jwt_issuer", "https://other.example.com")
    with pytest.raises(jwt.InvalidIssuerError):
        jwt_helper.decode_access(token)


def test_socket_handshake_accepts_token_and_header():
    token = jwt_helper.encode_access({"sub": "user-a"})
    assert authenticate_socket({}, {"token": token}).id == "user-a"
    environ = {"asgi.scope": {"headers": [(b"authorization", f"Bearer {token}".encode())]}}
    assert authenticate_socket(environ, None).id == "user-a"


def test_socket_handshake_rejects_bad_token_even_in_dev():
    with pytest.raises(ConnectionRefusedError):
        authenticate_socket({}, {"token": "nope", "userId": "user-a"})


def test_socket_dev_fallback_is_disabled_in_production(monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    with pytest.raises(ConnectionRefusedError):
        authenticate_socket({}, {"userId": "user-a"})


def test_socket_handshake_ignores_non_mapping_auth():
    token = jwt_helper.encode_access({"sub": "user-a"})
    environ = {"asgi.scope": {"headers": [(b"authorization", f"Bearer {token}".encode())]}}
    assert authenticate_socket(environ, "not-a-dict").id == "user-a"
    with pytest.raises(ConnectionRefusedError):
        authenticate_socket({}, ["user-a"])
