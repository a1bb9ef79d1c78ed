"""
Pytest configuration and fixtures for the manga-lens test suite.

This module provides reusable fixtures for:
- Isolated configuration (no real API keys, .env or config.yaml leak in)
- Flask app factory with test configuration
- Test client for route testing
- Synthetic page images and stubbed Gemini responses
"""

import io
import json
import sys
from pathlib import Path

import pytest
from PIL import Image

# Ensure project root is on sys.path to import mangalens/app
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import mangalens.config as config_module  # noqa: E402
from app import create_app  # noqa: E402

_ENV_VARS = (
    "GEMINI_API_KEY",
    "GEMINI_MODEL_NAME",
    "MANGALENS_CONFIG",
    "MANGALENS_UPLOADS_DIR",
    "MANGALENS_SETTINGS",
    "PORT",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """
    Start every test from built-in defaults.

    Runs from tmp_path so a developer's config.yaml is not picked up, and
    disables .env loading so a real GEMINI_API_KEY never reaches a test.
    """
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.chdir(tmp_path)
    config_module.reset_config()
    yield
    config_module.reset_config()


class FakeResponse:
    """Simple response stub used to simulate Gemini payloads."""

    def __init__(self, *, status_code: int = 200, payload=None, text: str = None, reason: str = "OK"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = reason
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("Invalid JSON")
        return self._payload


def gemini_payload(text: str) -> dict:
    """generateContent envelope carrying ``text`` in the first part."""
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@pytest.fixture
def stub_gemini(monkeypatch):
    """
    Patch requests.post for the Gemini client.

    Returns a controller: set ``.responses`` (list, consumed in order, last
    one repeats) and inspect ``.calls`` (list of kwargs dicts with url).
    """
    import mangalens.gemini_client as gemini_client

    class Controller:
        def __init__(self):
            self.calls = []
            self.responses = [FakeResponse(payload=gemini_payload("[]"))]

        def reply_text(self, text: str):
            self.responses = [FakeResponse(payload=gemini_payload(text))]

    controller = Controller()

    def _post(url, **kwargs):
        controller.calls.append({"url": url, **kwargs})
        idx = min(len(controller.calls) - 1, len(controller.responses) - 1)
        response = controller.responses[idx]
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(gemini_client.requests, "post", _post)
    return controller


def make_page(width=40, height=20, content=None, background=(0, 0, 0), fill=(230, 230, 230)):
    """
    Build an RGB test page.

    Args:
        content: (first_column, last_column) inclusive span painted with ``fill``;
                 None leaves the page entirely ``background``
    """
    img = Image.new("RGB", (width, height), background)
    if content is not None:
        first, last = content
        img.paste(fill, (first, 0, last + 1, height))
    return img


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def page_dir(tmp_path):
    """Directory with three out-of-order pages plus a stray non-image."""
    d = tmp_path / "chapter"
    d.mkdir()
    for name in ("page2.jpg", "page10.jpg", "page1.jpg"):
        make_page(content=(5, 30)).save(d / name, format="JPEG")
    (d / "notes.md").write_text("not an image", encoding="utf-8")
    return d


@pytest.fixture
def app(tmp_path):
    """
    Create Flask app with test configuration.

    Returns:
        Flask app instance configured for testing
    """
    app = create_app({
        'TESTING': True,
        'UPLOADS_ROOT': str(tmp_path / 'uploads'),
    })
    yield app


@pytest.fixture
def client(app):
    """
    Create Flask test client for route testing.

    Returns:
        Flask test client
    """
    return app.test_client()
