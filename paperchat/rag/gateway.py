"""
Gemini generateContent client for PaperChat.

Stateless: every call carries its own API key and model name.
"""
from typing import List, Optional, Tuple
import time

import requests

from paperchat.config import GEMINI_API_BASE
from paperchat.errors import AuthError, ModelError, RateLimited, SafetyBlocked, TransportError
from paperchat.logging_config import get_logger
from paperchat.models import ModelResponse
from paperchat.rag.references import extract_references

logger = get_logger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8192,
}

# Permissive thresholds for the four standard harm categories
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


def _server_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.reason or ""


def _raise_for_status(response: requests.Response) -> None:
    if response.ok:
        return

    status = response.status_code
    message = _server_message(response)
    if status in (401, 403) or "api key" in message.lower():
        raise AuthError(status, message)
    if status == 429:
        raise RateLimited(status, message)
    raise TransportError(status, message)


def parse_response(data: dict) -> ModelResponse:
    """
    Parse a generateContent response body.

    Only the first candidate's first text part is used.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        raise ModelError("No response generated")

    candidate = candidates[0]
    if candidate.get("finishReason") == "SAFETY":
        raise SafetyBlocked()

    parts = (candidate.get("content") or {}).get("parts") or []
    text = (parts[0].get("text") if parts else None) or ""

    return ModelResponse(
        text=text,
        references=extract_references(text),
        usage=data.get("usageMetadata")
    )


class GeminiGateway:
    """Sends prepared contents to Gemini and maps failures onto the ModelError family."""

    def __init__(self, base_url: str = GEMINI_API_BASE, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_request_body(self, contents: List[dict]) -> dict:
        return {
            "contents": contents,
            "generationConfig": dict(GENERATION_CONFIG),
            "safetySettings": [dict(s) for s in SAFETY_SETTINGS],
        }

    def send(self, contents: List[dict], api_key: str, model: str) -> ModelResponse:
        """POST contents to <base>/<model>:generateContent and parse the reply."""
        url = f"{self.base_url}/{model}:generateContent"

        start = time.time()
        try:
            response = self.session.post(
                url,
                params={"key": api_key},
                json=self.build_request_body(contents),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Gemini request failed: {e}")
            raise TransportError(None, str(e)) from e

        try:
            _raise_for_status(response)
        except TransportError as e:
            logger.error(f"Gemini API error: {e}")
            raise

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(response.status_code, f"Invalid JSON in response: {e}") from e

        result = parse_response(data)
        elapsed_ms = (time.time() - start) * 1000
        logger.info(f"Gemini ({model}) answered in {elapsed_ms:.0f}ms with {len(result.references)} page references")
        return result

    def test_connection(self, api_key: str) -> Tuple[bool, Optional[str]]:
        """Check that the key can list models. Returns (success, error)."""
        if not api_key:
            return False, "No API key configured"
        try:
            response = self.session.get(self.base_url, params={"key": api_key}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return False, str(e)
        if response.ok:
            return True, None
        return False, f"HTTP {response.status_code}"
