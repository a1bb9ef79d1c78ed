"""
Direct Google AI Studio client for Gemini multimodal text generation.

Uses the REST API directly (no SDK dependency). Each call is attempted
exactly once; callers decide what a failure means for them.
"""
from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests

from .config import get_config
from .errors import ConfigurationMissingError, ModelCallError

logger = logging.getLogger(__name__)

# Response bodies are truncated to this many characters in error messages
MAX_ERROR_BODY = 500

MIME_MAP = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def guess_mime_type(path: str, default: str = "image/jpeg") -> str:
    ext = Path(path).suffix.lower()
    return MIME_MAP.get(ext) or mimetypes.guess_type(path)[0] or default


class GeminiClient:
    """
    Gemini ``generateContent`` client for image + instruction prompts.

    Usage:
        client = GeminiClient(api_key="...")
        text = client.generate_text(jpeg_bytes, "image/jpeg", prompt)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[Tuple[float, float]] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Google AI Studio API key. If None, read from configuration.
            model: Default model name (e.g. gemini-2.5-flash)
            api_base: Endpoint prefix, overridable for tests/proxies
            timeout: (connect_timeout, read_timeout) in seconds
        """
        gemini_cfg = get_config()["gemini"]
        self._api_key = api_key
        self.model = model or gemini_cfg["model"]
        self.api_base = (api_base or gemini_cfg["api_base"]).rstrip("/")
        if timeout is None:
            timeout_cfg = gemini_cfg.get("timeout") or {}
            timeout = (
                float(timeout_cfg.get("connect", 10)),
                float(timeout_cfg.get("read", 300)),
            )
        self.timeout = timeout

    @property
    def api_key(self) -> str:
        """Get API key, falling back to configuration."""
        if not self._api_key:
            self._api_key = get_config()["gemini"].get("api_key") or ""
            if not self._api_key:
                raise ConfigurationMissingError(
                    "No Gemini API key provided (pass apiKey or set GEMINI_API_KEY)"
                )
        return self._api_key

    def _get_endpoint(self, model: str) -> str:
        return f"{self.api_base}/{model}:generateContent"

    @staticmethod
    def build_payload(image_bytes: bytes, mime_type: str, prompt: str) -> Dict[str, Any]:
        """Request body: instruction text part followed by the inline image."""
        return {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": base64.b64encode(image_bytes).decode("utf-8"),
                        }
                    },
                ]
            }]
        }

    @staticmethod
    def extract_text(data: Any) -> str:
        """Text of the first candidate's first part, or empty string."""
        try:
            text = data["candidates"][0]["content"]["parts"][0].get("text")
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
        return text or ""

    def generate_text(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        model: Optional[str] = None,
    ) -> str:
        """
        Send one image + prompt and return the generated text.

        Raises:
            ConfigurationMissingError: No API key available
            ModelCallError: Network failure, non-2xx status, or non-JSON body
        """
        model = model or self.model
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = self.build_payload(image_bytes, mime_type, prompt)

        logger.debug("POST %s (%d image bytes)", self._get_endpoint(model), len(image_bytes))
        try:
            response = requests.post(
                self._get_endpoint(model),
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ModelCallError(f"Request timeout: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise ModelCallError(f"Connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ModelCallError(f"Network error: {e}") from e

        if not response.ok:
            body = response.text or ""
            logger.warning("Gemini API error %s for model %s", response.status_code, model)
            status = f"{response.status_code} {response.reason}" if response.reason else str(response.status_code)
            raise ModelCallError(
                f"Gemini API error {status}: {body[:MAX_ERROR_BODY]}",
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ModelCallError(
                f"Invalid JSON response: {e}", status_code=response.status_code
            ) from e

        return self.extract_text(data)
