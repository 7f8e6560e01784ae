import json
from datetime import datetime
from typing import List, Optional

import httpx
import pytest

from websearch_orchestrator.config import Settings
from websearch_orchestrator.core import InMemorySettingsStore
from websearch_orchestrator.models import ModelInfo, SearchResult


class FakeTimer:
    """Monotonic timer the test moves forward by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClock:
    """Wall clock for quota months."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


class FakeChat:
    """Chat capability returning a canned answer and recording prompts."""

    def __init__(self, answer: Optional[str] = None, models: Optional[List[str]] = None, error: Exception = None):
        self.answer = answer
        self.error = error
        self.models = [ModelInfo(name=m) for m in (models if models is not None else ["claude-3-5-haiku-latest"])]
        self.calls = []

    def chat(self, model: str, prompt: str, system_prompt: str) -> str:
        self.calls.append((model, prompt, system_prompt))
        if self.error:
            raise self.error
        return self.answer

    def list_models(self) -> List[ModelInfo]:
        return list(self.models)


def brave_payload(*results: SearchResult) -> dict:
    return {"web": {"results": [
        {"title": r.title, "url": r.url, "description": r.snippet} for r in results
    ]}}


def searxng_payload(*results: SearchResult) -> dict:
    return {"results": [
        {"title": r.title, "url": r.url, "content": r.snippet} for r in results
    ]}


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 31, 23, 59))


@pytest.fixture
def store():
    return InMemorySettingsStore({
        "websearch.searxng.instances": json.dumps(["https://searx.one", "https://searx.two"]),
    })


@pytest.fixture
def settings(tmp_path):
    return Settings(
        anthropic_api_key=None,
        brave_api_key="brave-test-key-123",
        settings_file=str(tmp_path / "settings.json"),
        _env_file=None,
    )


@pytest.fixture
def make_client():
    """Build an httpx client whose requests go to ``handler``; records requests."""
    clients = []

    def factory(handler):
        requests = []

        def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(recording))
        client.requests = requests
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()
