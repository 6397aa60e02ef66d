"""Google Gemini name-resolution oracle (REST generateContent API)."""

import re
from typing import Any, Optional

import requests

from ...exceptions import OracleError
from ...http_client import create_session
from ...logging_config import logger
from ..models import OracleRequest
from ..prompts import build_resolution_prompt

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_TIMEOUT = 60  # seconds - generation is slow
DEFAULT_MAX_OUTPUT_TOKENS = 4096

_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def strip_code_fence(content: str) -> str:
    """Return the body of a fenced code block if the text contains one."""
    match = _JSON_FENCE.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


class GeminiOracle:
    """
    Resolves import names with a Gemini model.

    Sends a single generateContent request per run asking for a JSON
    document and returns the model's text. Every failure (missing key,
    transport error, HTTP error, empty answer) raises OracleError with
    the service's message.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        endpoint: str = GEMINI_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        temperature: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self._session = session

    @property
    def name(self) -> str:
        return "gemini"

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = create_session(content_type="application/json")
        return self._session

    def resolve(self, request: OracleRequest) -> Any:
        """
        Ask the model to classify all candidates.

        Returns:
            The model's JSON text with any code fence removed

        Raises:
            OracleError: On missing configuration or any service failure
        """
        if not self.api_key:
            raise OracleError("Google AI API key is not configured (set DEPURE_LLM_API_KEY or --api-key).")
        if not self.model:
            raise OracleError("Google AI model is not configured (set DEPURE_LLM_MODEL or --model).")

        url = f"{self.endpoint}/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": build_resolution_prompt(request)}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": DEFAULT_MAX_OUTPUT_TOKENS,
                "responseMimeType": "application/json",
            },
        }

        logger.debug(f"Querying {self.model} with {len(request.candidates)} candidates")
        try:
            response = self._get_session().post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise OracleError(f"Gemini Service Error: {e}") from e

        if response.status_code != 200:
            raise OracleError(f"Gemini Service Error: {self._error_message(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise OracleError(f"Gemini Service Error: response was not JSON ({e})") from e

        content = self._extract_text(data)
        if not content:
            raise OracleError("Gemini Service Error: received an empty response from the model.")

        return strip_code_fence(content)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull the service's error message out of an error response."""
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        if isinstance(error, dict) and error.get("message"):
            return f"({error.get('code', response.status_code)}) {error['message']}"
        return f"HTTP {response.status_code}"

    @staticmethod
    def _extract_text(data: Any) -> Optional[str]:
        """Return candidates[0].content.parts[0].text, or None."""
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
