import json

import pytest
from fastapi.testclient import TestClient

from clinical_advisor.app import create_app
from clinical_advisor.config import KnowledgeBase, Settings


class FakeGeminiClient:
    """Stands in for GeminiClient; replies are queued strings or exceptions."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def generate(self, prompt, response_schema=None):
        self.calls.append({"prompt": prompt, "response_schema": response_schema})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


ASSESSMENT = {
    "impression": "Likely viral upper respiratory infection.",
    "probableConditions": [
        {"condition": "Common cold", "likelihood": "HIGH", "explanation": "Runny nose and sore throat."},
        {"condition": "Influenza", "likelihood": "moderate", "explanation": "Fever is mild."},
    ],
    "recommendedActions": ["Rest", "Drink fluids"],
    "triageStatus": "MONITOR",
    "suggestedDoctor": {
        "name": "Dr. A. Example",
        "department": "General Medicine",
        "timing": "9:30AM-4:00PM",
        "charges": "Free",
        "reasonForReferral": "Primary care follow-up.",
    },
}


@pytest.fixture
def assessment_json():
    return json.dumps(ASSESSMENT)


@pytest.fixture
def knowledge_files(tmp_path):
    guidelines = tmp_path / "guidelines.txt"
    guidelines.write_text("Chest pain is an emergency.\n", encoding="utf-8")
    directory = tmp_path / "physicians.txt"
    directory.write_text("1. Dr. A. Example (General Medicine)\n", encoding="utf-8")
    return guidelines, directory


@pytest.fixture
def settings(knowledge_files):
    guidelines, directory = knowledge_files
    return Settings(
        _env_file=None,
        GOOGLE_API_KEY="test-key",
        GUIDELINES_PATH=str(guidelines),
        PHYSICIAN_DIRECTORY_PATH=str(directory),
        DATABASE_URL="sqlite://",
    )


@pytest.fixture
def knowledge(settings):
    return KnowledgeBase.load(settings)


@pytest.fixture
def fake_gemini():
    return FakeGeminiClient()


@pytest.fixture
def client(settings, fake_gemini):
    app = create_app(settings, gemini_client=fake_gemini)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def new_session(client):
    def _create(mode="structured"):
        response = client.post("/api/sessions", json={"mode": mode})
        assert response.status_code == 201
        return response.json()["session_id"]
    return _create
