import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLMClient, sse
from neurostudy.llm.errors import LLMStatusError, LLMTransportError
from neurostudy.service.server import app, get_llm_client

CHAT_BODY = {
    "message": "What is photosynthesis?",
    "documentContent": "Photosynthesis converts light into chemical energy.",
    "conversationHistory": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
    "userId": "u-1",
    "documentId": "d-1",
}


@pytest.fixture
def use_fake():
    def install(fake):
        app.dependency_overrides[get_llm_client] = lambda: fake
        return TestClient(app)
    yield install
    app.dependency_overrides.clear()


def read_events(text):
    return [line[len("data: "):] for line in text.split("\n") if line.startswith("data: ")]


def test_health():
    r = TestClient(app).get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_chat_streams_normalized_events(use_fake):
    fake = FakeLLMClient(chunks=[
        sse(json.dumps({"choices": [{"delta": {"content": "Photo"}}]})),
        sse(json.dumps({"choices": [{"delta": {"content": "synthesis is..."}}]})),
        sse("[DONE]"),
    ])
    client = use_fake(fake)
    r = client.post("/api/chat", json=CHAT_BODY)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert r.headers["cache-control"] == "no-cache"
    events = read_events(r.text)
    assert events[-1] == "[DONE]"
    assert "".join(json.loads(e)["content"] for e in events[:-1]) == "Photosynthesis is..."
    # history is forwarded in order between system context and the new question
    sent = fake.stream_calls[0]
    assert [m["role"] for m in sent] == ["system", "user", "assistant", "user"]


def test_chat_total_failure_still_well_formed(use_fake):
    fake = FakeLLMClient(stream_error=LLMTransportError("down"), answer=LLMStatusError(500, "down"))
    r = use_fake(fake).post("/api/chat", json=CHAT_BODY)
    assert r.status_code == 200
    assert read_events(r.text) == ['{"content": "Uplink Failure: System Offline."}', "[DONE]"]


def test_chat_rejects_empty_message(use_fake):
    client = use_fake(FakeLLMClient())
    r = client.post("/api/chat", json={**CHAT_BODY, "message": "   "})
    assert r.status_code == 422
    r = client.post("/api/chat", json={"message": "hi"})
    assert r.status_code == 422


def test_chat_history_optional(use_fake):
    fake = FakeLLMClient(chunks=[sse('{"content":"ok"}', "[DONE]")])
    r = use_fake(fake).post("/api/chat", json={"message": "hi", "documentContent": "doc", "conversationHistory": None})
    assert r.status_code == 200
    assert len(fake.stream_calls[0]) == 2


def test_chat_simple(use_fake):
    fake = FakeLLMClient(answer="single shot")
    r = use_fake(fake).post("/api/chat-simple", json=CHAT_BODY)
    assert r.status_code == 200
    assert r.json() == {"content": "single shot"}


def test_chat_simple_failure_returns_notice(use_fake):
    fake = FakeLLMClient(answer=LLMTransportError("down"))
    r = use_fake(fake).post("/api/chat-simple", json=CHAT_BODY)
    assert r.json() == {"content": "Uplink Failure: System Offline."}


def test_generate_cards(use_fake):
    fake = FakeLLMClient(answer=json.dumps({"cards": [
        {"question": "Q1", "answer": "A1"},
        {"question": "Seen", "answer": "A2"},
    ]}))
    r = use_fake(fake).post("/api/generate-cards", json={
        "documentContent": "Cells", "title": "Bio", "existingQuestions": ["seen"],
    })
    assert r.status_code == 200
    assert r.json() == [{"question": "Q1", "answer": "A1"}]


def test_generate_cards_provider_failure(use_fake):
    fake = FakeLLMClient(answer=LLMStatusError(401, "bad key"))
    r = use_fake(fake).post("/api/generate-cards", json={"documentContent": "Cells"})
    assert r.status_code == 502
    assert r.json() == {"error": "Failed to generate cards"}


def test_generate_quiz():
    body = {"cards": [{"question": f"Q{i}", "answer": f"A{i}"} for i in range(5)], "seed": 3}
    r = TestClient(app).post("/api/generate-quiz", json=body)
    assert r.status_code == 200
    quiz = r.json()
    assert len(quiz) == 5
    assert all(q["answer"] in q["options"] and len(q["options"]) == 4 for q in quiz)


def test_generate_quiz_empty():
    r = TestClient(app).post("/api/generate-quiz", json={"cards": []})
    assert r.status_code == 400


def test_diagnostics(use_fake):
    r = use_fake(FakeLLMClient()).get("/diagnostics")
    body = r.json()
    assert body["llm"]["llm_api"] is True
    assert body["llm"]["model_listed"] is True
    assert "llm_api_key_set" in body["config"]
