"""Tests for the HTTP endpoints in ``recovery_assist.main``."""

import pytest
from fastapi.testclient import TestClient

import recovery_assist.main as main_module
from recovery_assist.chat_client import ChatReply, ChatServiceError
from recovery_assist.scrape import PageFetchError

PAGE = """
<html>
  <head><title>Altadena housing help</title></head>
  <body>
    <h1>Temporary housing</h1>
    <main>
      <p>Temporary shelter and rental assistance are available to displaced households in Altadena.</p>
    </main>
    <section id="apply"></section>
  </body>
</html>
"""


class FakeChatClient:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def ask(self, message, context, conversation_id=None, is_first_message=False):
        self.calls.append((message, context.url, conversation_id, is_first_message))
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def client():
    with TestClient(main_module.app) as test_client:
        yield test_client
    main_module.app.dependency_overrides.clear()


def test_page_context_from_posted_html(client):
    response = client.post(
        "/api/page-context",
        json={
            "url": "https://recovery.test/altadena/housing",
            "html": PAGE,
            "scroll_y": 0,
            "viewport_height": 600,
            "sections": [{"id": "apply", "top": 0, "height": 1000}],
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["title"] == "Altadena housing help"
    assert payload["location"]["city"] == "Altadena"
    assert payload["primary_topic"] == "housing"
    assert payload["active_section"] == "apply"


def test_page_context_fetches_when_html_missing(client, monkeypatch):
    def fake_snapshot(url, viewport=None, layout=None):
        return main_module.HtmlSnapshot(url, PAGE, viewport=viewport, layout=layout)

    monkeypatch.setattr(main_module, "snapshot_from_url", fake_snapshot)
    response = client.post("/api/page-context/simplified", json={"url": "https://recovery.test/altadena"})
    assert response.status_code == 200
    assert response.json() == {
        "url": "https://recovery.test/altadena",
        "title": "Altadena housing help",
        "location": "Altadena",
        "topic": "housing",
    }


def test_fetch_failure_maps_to_bad_gateway(client, monkeypatch):
    def failing_snapshot(url, viewport=None, layout=None):
        raise PageFetchError(f"Could not fetch {url}")

    monkeypatch.setattr(main_module, "snapshot_from_url", failing_snapshot)
    response = client.post("/api/page-context", json={"url": "https://recovery.test/down"})
    assert response.status_code == 502


def test_request_validation(client):
    response = client.post("/api/page-context", json={"url": "", "html": PAGE})
    assert response.status_code == 422


def test_assist_forwards_context_to_chat(client):
    fake = FakeChatClient(reply=ChatReply(response="Here are housing options.", confidence=0.9, intent="housing"))
    main_module.app.dependency_overrides[main_module.get_chat_client] = lambda: fake

    response = client.post(
        "/api/assist",
        json={
            "url": "https://recovery.test/altadena/housing",
            "html": PAGE,
            "message": "Where can I stay?",
            "conversation_id": "abc",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["reply"]["response"] == "Here are housing options."
    assert body["context"]["topic"] == "housing"
    assert body["summary"] == "housing in Altadena"
    assert fake.calls == [("Where can I stay?", "https://recovery.test/altadena/housing", "abc", False)]


def test_assist_chat_failure_maps_to_bad_gateway(client):
    fake = FakeChatClient(error=ChatServiceError("Chat backend returned 500"))
    main_module.app.dependency_overrides[main_module.get_chat_client] = lambda: fake

    response = client.post(
        "/api/assist",
        json={"url": "https://recovery.test/", "html": PAGE, "message": "hello"},
    )
    assert response.status_code == 502
