"""HTTP surface: auth, inbox, message and send endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from qumail.api.main import create_app
from qumail.application.use_cases.fetch_inbox import InboxPage, MailboxService
from qumail.application.use_cases.resolve_credentials import CredentialResolver
from qumail.application.use_cases.send_email import SendResult
from qumail.domain.entities.email_message import NormalizedMessage
from qumail.domain.errors import RawMailUnavailable
from qumail.infrastructure.http.dependencies import (
    get_mailbox_service,
    get_oauth_client,
    get_send_use_case,
    get_store,
)
from qumail.infrastructure.sqlite.client import SQLiteUserStore


@pytest.fixture
def store(tmp_path) -> SQLiteUserStore:
    return SQLiteUserStore(tmp_path / "users.db")


@pytest.fixture
def app(store):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _login(client: TestClient) -> dict:
    response = client.post("/auth/app-login", json={"email": "Carol@Example.com", "appPassword": "pw"})
    assert response.status_code == 200
    return response.json()


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/health/live").json() == {"status": "alive"}


def test_inbox_requires_token(client):
    response = client.get("/email/inbox")
    assert response.status_code == 401
    assert response.json()["detail"] == "No authorization header provided"


def test_inbox_rejects_bad_token(client):
    response = client.get("/email/inbox", headers=_auth("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Token verification failed"


def test_app_login_stores_imap_defaults(client, store):
    body = _login(client)

    assert body["message"] == "success"
    assert body["user"]["email"] == "carol@example.com"
    user = store.get_by_email("carol@example.com")
    assert user.imap_host == "imap.gmail.com"
    assert user.imap_port == 993
    assert user.has_raw_mail


def test_app_login_requires_password(client):
    response = client.post("/auth/app-login", json={"email": "carol@example.com", "appPassword": " "})
    assert response.status_code == 400


def test_google_login(app, client, store):
    oauth = AsyncMock()
    oauth.userinfo.return_value = {"email": "bob@example.com", "name": "Bob", "picture": "https://img"}
    app.dependency_overrides[get_oauth_client] = lambda: oauth

    response = client.post("/auth/google", json={"accessToken": "ya29.token", "refreshToken": "r-1"})

    assert response.status_code == 200
    user = store.get_by_email("bob@example.com")
    assert user.access_token == "ya29.token"
    assert user.refresh_token == "r-1"
    assert user.token_expiry is not None
    assert response.json()["user"]["name"] == "Bob"


def test_inbox_failure_is_structured(app, client):
    service = AsyncMock()
    service.list_inbox.return_value = InboxPage(error=RawMailUnavailable("auth"))
    app.dependency_overrides[get_mailbox_service] = lambda: service
    token = _login(client)["token"]

    response = client.get("/email/inbox", params={"limit": 1000}, headers=_auth(token))

    assert response.status_code == 200
    body = response.json()
    assert body["emails"] == []
    assert body["hasMore"] is False
    assert body["error"]["code"] == "IMAP_AUTH_FAILED"
    assert service.list_inbox.await_args.kwargs["limit"] == 100


def test_inbox_page_shape(app, client):
    message = NormalizedMessage(
        id="raw:12", thread_id=None, sender="alice@example.com", to="carol@example.com",
        subject="Hi", date="Mon, 02 Jun 2025 10:00:00 +0000", body="<p>x</p>", snippet="x", unread=True,
    )
    service = AsyncMock()
    service.list_inbox.return_value = InboxPage(emails=[message], source="raw")
    app.dependency_overrides[get_mailbox_service] = lambda: service
    token = _login(client)["token"]

    body = client.get("/email/inbox", headers=_auth(token)).json()

    assert body["source"] == "raw"
    assert body["approximatePagination"] is True
    assert body["emails"][0]["from"] == "alice@example.com"
    assert body["emails"][0]["id"] == "raw:12"
    assert body["error"] is None


def test_message_with_bad_id_is_400(app, client, store):
    app.dependency_overrides[get_mailbox_service] = lambda: MailboxService(
        resolver=CredentialResolver(store), hosted=AsyncMock(), raw=AsyncMock()
    )
    token = _login(client)["token"]

    response = client.get("/email/message/12", headers=_auth(token))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_MESSAGE_ID"


def test_message_from_wrong_provider_is_409(app, client, store):
    app.dependency_overrides[get_mailbox_service] = lambda: MailboxService(
        resolver=CredentialResolver(store), hosted=AsyncMock(), raw=AsyncMock()
    )
    token = _login(client)["token"]

    response = client.get("/email/message/hosted:abc", headers=_auth(token))

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "NO_MAILBOX_CONFIGURED"


def test_send(app, client):
    use_case = AsyncMock()
    use_case.run.return_value = SendResult(message_id="<abc@example.com>", via="raw")
    app.dependency_overrides[get_send_use_case] = lambda: use_case
    token = _login(client)["token"]

    response = client.post(
        "/email/send", json={"to": "bob@example.com", "subject": "Hi", "body": "<p>yo</p>"}, headers=_auth(token)
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "messageId": "<abc@example.com>",
        "message": "Email sent successfully!",
    }


def test_inbox_limit_zero_clamps_to_one(app, client):
    service = AsyncMock()
    service.list_inbox.return_value = InboxPage()
    app.dependency_overrides[get_mailbox_service] = lambda: service
    token = _login(client)["token"]

    response = client.get("/email/inbox", params={"limit": 0}, headers=_auth(token))

    assert response.status_code == 200
    assert service.list_inbox.await_args.kwargs["limit"] == 1
