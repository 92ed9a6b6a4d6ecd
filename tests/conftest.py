"""
Pytest configuration and shared fixtures for testing.
Provides settings overrides, fake HTTP sessions, fake speech engines and a
ready-to-use chat session.
"""
import pytest
import os
import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

# Set testing environment before importing the package
os.environ["ENVIRONMENT"] = "testing"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DEBUG"] = "true"

from bmw_assistant.config import ChatSettings
from bmw_assistant.agents import ChatSessionManager
from bmw_assistant.session import InMemoryStorage, PersistenceStore, create_persistence_store
from bmw_assistant.speech import RecognitionEngine, SpeechBridge, SynthesisEngine
from bmw_assistant.tools import (
    AttachmentEncoder,
    CompletionClient,
    LocalFile,
    UploadPipeline,
)

TEST_API_BASE = "http://testserver"
CHAT_URL = f"{TEST_API_BASE}/api/bmw/chat"
UPLOAD_URL = f"{TEST_API_BASE}/api/bmw/upload"


# ===========================
# Fake HTTP Layer
# ===========================

class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 200, payload: Any = None, invalid_json: bool = False):
        self.status = status
        self.payload = payload
        self.invalid_json = invalid_json

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class _PendingRequest:
    """Async context manager returned by FakeHTTPSession.post()."""

    def __init__(self, session: "FakeHTTPSession"):
        self.session = session
        self.response: Optional[FakeResponse] = None

    async def __aenter__(self) -> FakeResponse:
        if self.session.gate is not None:
            await self.session.gate.wait()

        if not self.session.responses:
            raise AssertionError("Unexpected request: no scripted response left")

        outcome = self.session.responses.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome

        self.response = outcome
        return outcome

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class FakeHTTPSession:
    """
    Scripted replacement for aiohttp.ClientSession.

    Each post() consumes the next scripted outcome: a FakeResponse or an
    exception to raise. Requests are recorded when issued; an optional gate
    holds every response until it is set.
    """

    def __init__(self, *outcomes: Union[FakeResponse, BaseException]):
        self.responses: List[Union[FakeResponse, BaseException]] = list(outcomes)
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    def queue(self, *outcomes: Union[FakeResponse, BaseException]) -> None:
        self.responses.extend(outcomes)

    def post(self, url: str, **kwargs) -> _PendingRequest:
        self.calls.append((url, kwargs))
        return _PendingRequest(self)

    async def close(self) -> None:
        self.closed = True

    @property
    def json_bodies(self) -> List[Any]:
        return [kwargs.get("json") for _, kwargs in self.calls]


def success_reply(message: str = "Here are some options.", products: Optional[list] = None) -> FakeResponse:
    """Completion response in the success shape."""
    payload: Dict[str, Any] = {"status": "success", "message": message}
    if products is not None:
        payload["products"] = products
    return FakeResponse(200, payload)


def upload_reply(url: str, content: str = "", preview: Optional[str] = None) -> FakeResponse:
    """Ingestion response for one stored file."""
    payload: Dict[str, Any] = {"url": url, "content": content}
    if preview is not None:
        payload["previewDataUrl"] = preview
    return FakeResponse(200, payload)


# ===========================
# Fake Speech Engines
# ===========================

class FakeRecognitionEngine(RecognitionEngine):
    """Recognition engine driven by the test."""

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.sessions: List[Dict[str, Any]] = []
        self.stop_calls = 0

    def is_supported(self) -> bool:
        return self.supported

    def start(self, locale_tag, on_result, on_error, on_end) -> None:
        self.sessions.append({
            "locale": locale_tag,
            "on_result": on_result,
            "on_error": on_error,
            "on_end": on_end,
        })

    def stop(self) -> None:
        self.stop_calls += 1

    def emit_result(self, transcript: str, session: int = -1) -> None:
        self.sessions[session]["on_result"](transcript)

    def emit_end(self, session: int = -1) -> None:
        self.sessions[session]["on_end"]()

    def emit_error(self, error: Exception, session: int = -1) -> None:
        self.sessions[session]["on_error"](error)


class FakeSynthesisEngine(SynthesisEngine):
    """Synthesis engine driven by the test."""

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.utterances: List[Dict[str, Any]] = []
        self.cancel_calls = 0

    def is_supported(self) -> bool:
        return self.supported

    def speak(self, text, locale_tag, on_end, on_error) -> None:
        self.utterances.append({
            "text": text,
            "locale": locale_tag,
            "on_end": on_end,
            "on_error": on_error,
        })

    def cancel(self) -> None:
        self.cancel_calls += 1

    def finish(self, utterance: int = -1) -> None:
        self.utterances[utterance]["on_end"]()

    def fail(self, error: Exception, utterance: int = -1) -> None:
        self.utterances[utterance]["on_error"](error)


# ===========================
# Settings Fixtures
# ===========================

@pytest.fixture
def test_settings(tmp_path) -> ChatSettings:
    """
    Create test settings instance.
    Previews go to a per-test directory; the log is kept in memory.
    """
    return ChatSettings(
        environment="testing",
        debug=True,
        api_base_url=TEST_API_BASE,
        storage_backend="memory",
        storage_dir=str(tmp_path / "storage"),
        preview_dir=str(tmp_path / "previews"),
        speech_locale="en-AU",
    )


@pytest.fixture
def settings_override(test_settings: ChatSettings, monkeypatch):
    """
    Override settings for individual tests.
    Usage: settings_override({"apology_message": "Oops"})
    """
    def _override(overrides: Dict[str, Any]) -> ChatSettings:
        for key, value in overrides.items():
            monkeypatch.setattr(test_settings, key, value)
        return test_settings

    return _override


# ===========================
# Component Fixtures
# ===========================

@pytest.fixture
def chat_http() -> FakeHTTPSession:
    """HTTP session used by the completion client."""
    return FakeHTTPSession()


@pytest.fixture
def upload_http() -> FakeHTTPSession:
    """HTTP session used by the upload pipeline."""
    return FakeHTTPSession()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def persistence(test_settings: ChatSettings, storage: InMemoryStorage) -> PersistenceStore:
    return create_persistence_store(test_settings, backend=storage)


@pytest.fixture
def encoder(test_settings: ChatSettings) -> AttachmentEncoder:
    return AttachmentEncoder.from_settings(test_settings)


@pytest.fixture
def recognition_engine() -> FakeRecognitionEngine:
    return FakeRecognitionEngine()


@pytest.fixture
def synthesis_engine() -> FakeSynthesisEngine:
    return FakeSynthesisEngine()


@pytest.fixture
def speech_bridge(recognition_engine, synthesis_engine) -> SpeechBridge:
    return SpeechBridge(
        recognition=recognition_engine,
        synthesis=synthesis_engine,
        locale_tag="en-AU"
    )


@pytest.fixture
def make_file() -> Callable[..., LocalFile]:
    """
    Build in-memory files.
    Usage: make_file("tile.png", "image/png", size=1024)
    """
    def _make(name: str, mime_type: Optional[str] = None, size: int = 16) -> LocalFile:
        return LocalFile.from_bytes(name, b"x" * size, mime_type)

    return _make


# ===========================
# Session Fixtures
# ===========================

@pytest.fixture
def build_chat(test_settings, persistence, encoder, chat_http, upload_http, speech_bridge):
    """Factory for a chat session wired to the fakes (not yet initialized)."""
    def _build(**overrides) -> ChatSessionManager:
        components = {
            "chat_settings": test_settings,
            "persistence": persistence,
            "encoder": encoder,
            "uploader": UploadPipeline.from_settings(test_settings, session=upload_http),
            "completion": CompletionClient.from_settings(test_settings, session=chat_http),
            "speech": speech_bridge,
        }
        components.update(overrides)
        return ChatSessionManager(**components)

    return _build


@pytest.fixture
async def chat(build_chat):
    """Initialized chat session; disposed after the test."""
    manager = build_chat()
    await manager.init()
    yield manager
    await manager.dispose()


# ===========================
# Pytest Configuration
# ===========================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "requires_redis: marks tests requiring Redis connection"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
