"""Remote OCR backend on the Gemini generateContent endpoint.

The API key is read from the credential store on every call, so `set-key`
takes effect without restarting anything. HTTP and payload failures map onto
the OCR error kinds:

  no stored key          -> OCRMissingCredentialError
  429                    -> OCRRateLimitError
  401 / 403              -> OCRUnauthorizedError
  connection / timeout   -> OCRNetworkError
  non-JSON body, or no candidates[0].content.parts[0].text
                         -> OCRMalformedResponseError
"""
from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests
from PIL import Image

from .credentials import CredentialStore
from .errors import (
    OCRError,
    OCRMalformedResponseError,
    OCRMissingCredentialError,
    OCRNetworkError,
    OCRRateLimitError,
    OCRUnauthorizedError,
)
from .ocr import check_recognized_text
from .sanitize import MAX_TEXT_LENGTH
from .utils import record_error

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
DEFAULT_TIMEOUT = 30.0

OCR_PROMPT = (
    "画像から日本語と英語のテキストを抽出してください。"
    "単語の対訳形式のリストがあれば、そのまま出力してください。"
    "記号や矢印（→、:、-など）が含まれている場合はそのまま保持してください。"
)


def encode_png(image: Image.Image) -> str:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


def build_payload(image: Image.Image, prompt: str = OCR_PROMPT) -> dict[str, Any]:
    return {
        "contents": [{
            "parts": [
                {"text": prompt},
                {"inline_data": {"mime_type": "image/png", "data": encode_png(image)}},
            ]
        }]
    }


def extract_text(data: Any) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise OCRMalformedResponseError(f"missing_text_part: {e!r}") from e
    if not isinstance(text, str):
        raise OCRMalformedResponseError(f"non_text_part: {type(text).__name__}")
    return text


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or str(response.status_code)
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or response.reason)
    return response.reason or str(response.status_code)


@dataclass
class GeminiRecognizer:
    credentials: CredentialStore
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT
    prompt: str = OCR_PROMPT
    max_text_length: int = MAX_TEXT_LENGTH
    errors_path: Path | None = None
    session: Any = field(default_factory=lambda: requests.Session())

    def _post(self, api_key: str, payload: dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(
                self.endpoint,
                json=payload,
                headers={"x-goog-api-key": api_key},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise OCRNetworkError(f"network_error: {e}") from e
        except requests.RequestException as e:
            raise OCRNetworkError(f"request_failed: {e}") from e

    def recognize(self, image: Image.Image) -> str:
        api_key = self.credentials.load()
        if not api_key:
            raise OCRMissingCredentialError("api_key_not_set")

        try:
            response = self._post(api_key, build_payload(image, self.prompt))
            status = response.status_code
            if status == 429:
                raise OCRRateLimitError("http_429")
            if status in (401, 403):
                raise OCRUnauthorizedError(f"http_{status}")
            if not response.ok:
                raise OCRError(f"http_{status}: {_error_detail(response)}")

            try:
                data = response.json()
            except ValueError as e:
                raise OCRMalformedResponseError(f"invalid_json: {e}") from e
            return check_recognized_text(extract_text(data), self.max_text_length)
        except OCRError as e:
            record_error(self.errors_path, stage="ocr", message=f"{type(e).__name__}: {e}")
            raise
