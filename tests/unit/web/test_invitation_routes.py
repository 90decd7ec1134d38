"""Tests for inviting candidates over HTTP."""

from datetime import timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

from codeassess.core.modules.session.models import Session
from codeassess.core.modules.session.token import generate_session_token, hash_token
from codeassess.errors import DeliveryError
from codeassess.utils import now
from codeassess.web.cookies import SESSION_COOKIE_NAME


def _login(client, memory_store, user) -> None:
    token = generate_session_token()
    memory_store.sessions[hash_token(token)] = Session(
        id=hash_token(token), user_id=user.id, expires_at=now() + timedelta(days=30)
    )
    client.cookies.set(SESSION_COOKIE_NAME, token)


def _link_params(link: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(link).query)


def test_admin_invitation_is_mailed_to_candidate(client, memory_store, admin_user, invitation_service, mailer):
    _login(client, memory_store, admin_user)

    response = client.post("/api/v1/invitations", json={"email": "New.Candidate@Example.com"})

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new.candidate@example.com"

    [sent] = mailer.outbox
    assert sent.to == "new.candidate@example.com"
    link = urlparse(sent.link)
    assert f"{link.scheme}://{link.netloc}{link.path}" == "https://assess.example.com/auth/verify"
    [token] = _link_params(sent.link)["token"]
    assert _link_params(sent.link)["email"] == ["new.candidate@example.com"]
    assert invitation_service.pending[token] == "new.candidate@example.com"
    assert sent.link in sent.message.get_content()


def test_response_does_not_reveal_the_magic_link(client, memory_store, admin_user, mailer):
    _login(client, memory_store, admin_user)

    response = client.post("/api/v1/invitations", json={"email": "cand@example.com"})

    [token] = _link_params(mailer.outbox[0].link)["token"]
    assert set(response.json()) == {"email", "expires_at"}
    assert token not in response.text


def test_delivery_failure_is_a_server_error(client, memory_store, admin_user, mailer):
    _login(client, memory_store, admin_user)
    mailer.send_magic_link = AsyncMock(side_effect=DeliveryError("Could not send magic link"))

    response = client.post("/api/v1/invitations", json={"email": "cand@example.com"})

    assert response.status_code == 500
    assert response.json() == {"message": "An unexpected error occurred.", "type": "internal_server_error"}


def test_candidate_cannot_invite(client, memory_store, candidate_user, mailer):
    _login(client, memory_store, candidate_user)

    response = client.post("/api/v1/invitations", json={"email": "friend@example.com"})

    assert response.status_code == 403
    assert response.json()["type"] == "access_denied"
    assert mailer.outbox == []


def test_invitation_requires_session(client):
    response = client.post("/api/v1/invitations", json={"email": "friend@example.com"})
    assert response.status_code == 401


def test_invited_candidate_can_sign_in(client, memory_store, admin_user, mailer):
    _login(client, memory_store, admin_user)
    client.post("/api/v1/invitations", json={"email": "cand@example.com"})
    client.cookies.clear()
    [token] = _link_params(mailer.outbox[0].link)["token"]

    response = client.post("/api/v1/auth/verify", json={"token": token, "email": "cand@example.com"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "cand@example.com"
    assert client.get("/api/v1/auth/session").status_code == 200


async def test_admin_link_is_issued_for_configured_admin(app, invitation_service, mailer):
    link = await app.issue_admin_link()

    params = _link_params(link)
    assert params["email"] == ["admin@example.com"]
    assert invitation_service.pending[params["token"][0]] == "admin@example.com"
    assert mailer.outbox == []
