"""
Shared fixtures: configuration, a fake Gemini upstream and an app client.
"""
import json
from typing import Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from agenda_gateway.config import GatewayConfig
from agenda_gateway.main import create_app
from agenda_gateway.services.extraction import ExtractionGateway
from agenda_gateway.services.gemini_client import GeminiClient

CONFIG_ENV_VARS = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_ENDPOINT",
    "PROMPT_TEMPLATE",
    "UPSTREAM_TIMEOUT_MS",
    "UPSTREAM_MAX_RETRIES",
    "RECORD_MODE",
    "MAX_BODY_MB",
    "PORT",
    "APP_ENV",
    "CORS_ORIGINS",
    "LOG_DIR",
)

TEST_API_KEY = "AIzaTestKey-0123456789abcdef"

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

ANA_LOPEZ = {
    "FECHA": "2025/01/01",
    "HORA": "09:00",
    "NOMBRE": "ANA LOPEZ",
    "IDENTIDAD": "12345",
    "EDAD": "40",
}


def make_config(**overrides) -> GatewayConfig:
    values = {"api_key": TEST_API_KEY, "log_dir": "", "timeout_ms": 5000}
    values.update(overrides)
    return GatewayConfig(_env_file=None, **values)


def gemini_reply(text: str, finish_reason: str = "STOP") -> dict:
    """Build a generateContent response envelope around ``text``."""
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": text}], "role": "model"},
                "finishReason": finish_reason,
            }
        ],
        "usageMetadata": {"totalTokenCount": 321},
    }


class FakeUpstream:
    """
    Records requests and answers them from a queue of responses.

    Each queued item is either an httpx.Response, a dict (sent as a 200 JSON
    body) or an exception instance to raise.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings from the developer's shell out of the tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> GatewayConfig:
    return make_config()


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream(gemini_reply(json.dumps([ANA_LOPEZ])))


@pytest.fixture
def build_gateway() -> Callable[..., ExtractionGateway]:
    def _build(upstream: FakeUpstream, **overrides) -> ExtractionGateway:
        cfg = make_config(**overrides)
        client = GeminiClient(cfg, transport=httpx.MockTransport(upstream))
        return ExtractionGateway(cfg, client)

    return _build


@pytest.fixture
def build_client():
    """Return a factory producing TestClients wired to a fake upstream."""
    clients = []

    def _build(upstream: FakeUpstream, **overrides) -> TestClient:
        cfg = make_config(**overrides)
        gemini = GeminiClient(cfg, transport=httpx.MockTransport(upstream))
        client = TestClient(create_app(cfg, gemini))
        client.__enter__()
        clients.append(client)
        return client

    yield _build

    for client in clients:
        client.__exit__(None, None, None)
