import json
import os
from types import SimpleNamespace

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest

from prototype_engine.services.gemini_prototype_generator import GeminiPrototypeGenerator
from prototype_engine.storage.kv_store import InMemoryKeyValueStore, set_kv_store
from prototype_engine.storage.project_store import ProjectStore, reset_project_store


PRD_MARKDOWN = "# Project Overview\nA bakery site.\n\n# Sitemap / Page Structure\n- Homepage\n- About Us\n"

INDEX_HTML = (
    "<!DOCTYPE html><html><head><title>Home</title></head>"
    "<body><a href=\"./about.html\">About</a></body></html>"
)
ABOUT_HTML = "<!DOCTYPE html><html><head><title>About</title></head><body><h1>About</h1></body></html>"


def files_payload(*files):
    return json.dumps({"files": [{"name": n, "content": c} for n, c in files]})


class ScriptedModel:
    """Stands in for genai.GenerativeModel; records every call."""

    def __init__(self, responder, system_instruction, calls):
        self._responder = responder
        self.system_instruction = system_instruction
        self._calls = calls

    async def generate_content_async(self, contents, generation_config=None):
        call = SimpleNamespace(
            contents=contents,
            generation_config=generation_config or {},
            system_instruction=self.system_instruction,
        )
        self._calls.append(call)
        result = self._responder(call)
        if isinstance(result, Exception):
            raise result
        return SimpleNamespace(text=result)


def last_user_text(call):
    parts = call.contents[-1]["parts"]
    return parts[0] if parts and isinstance(parts[0], str) else ""


def default_responder(call):
    if call.generation_config.get("response_mime_type") == "application/json":
        return json.dumps({"pages": ["Homepage", "About Us"]})
    if call.system_instruction is None:
        return PRD_MARKDOWN
    if "'About Us' page" in last_user_text(call):
        return files_payload(("index.html", INDEX_HTML), ("about.html", ABOUT_HTML))
    return files_payload(("index.html", INDEX_HTML))


class FakeGemini:
    def __init__(self):
        self.calls = []
        self.responder = default_responder

    def factory(self, system_instruction=None):
        return ScriptedModel(lambda call: self.responder(call), system_instruction, self.calls)

    @property
    def prototype_calls(self):
        return [c for c in self.calls if c.system_instruction is not None]


@pytest.fixture(autouse=True)
def _isolated_storage():
    kv = InMemoryKeyValueStore()
    set_kv_store(kv)
    reset_project_store(None)
    yield kv
    set_kv_store(None)
    reset_project_store(None)


@pytest.fixture
def kv(_isolated_storage):
    return _isolated_storage


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def generator(fake_gemini):
    return GeminiPrototypeGenerator(model_factory=fake_gemini.factory)


@pytest.fixture
def store(kv):
    project_store = ProjectStore(kv)
    reset_project_store(project_store)
    return project_store
