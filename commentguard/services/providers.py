"""
AI provider clients.

Each provider knows how to build its request body, which headers it needs
and where the answer text sits in its response. OpenAI and OpenRouter speak
the chat-completions protocol and go through the OpenAI SDK; Anthropic's
messages API is called directly over HTTPS.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from openai import OpenAI, OpenAIError, APIResponseValidationError, APIStatusError

from commentguard.config import settings
from commentguard.exceptions import ProviderError
from commentguard.utils.logging_config import metrics

logger = logging.getLogger(__name__)

USER_AGENT = "AI-Comment-Guard/2.0"
MAX_TOKENS = 150
TEMPERATURE = 0.1

TEST_PROMPT = "Test connection. Reply with: OK"
TEST_SYSTEM_MESSAGE = "You are a test assistant."


@dataclass
class ProviderResponse:
    response: str
    provider: str
    processing_time: float  # seconds
    raw_response: Dict[str, Any]


def _dig(data: Any, *path):
    """Follow a key/index path, returning None when any step is missing."""
    for key in path:
        try:
            data = data[key]
        except (KeyError, IndexError, TypeError):
            return None
    return data


def http_error_message(code: int, body: Any) -> str:
    """'HTTP <code>' plus the provider's error message when the body has one."""
    message = f"HTTP {code}"

    data = body
    if isinstance(body, (str, bytes)):
        try:
            data = json.loads(body)
        except ValueError:
            data = None

    if isinstance(data, dict) and data.get("error"):
        error = data["error"]
        if isinstance(error, dict) and error.get("message"):
            message += f": {error['message']}"
        elif isinstance(error, str):
            message += f": {error}"

    return message


class BaseProvider:
    """Shared request flow: build body -> send -> extract text -> time it."""

    name: str = ""
    endpoint: str = ""
    default_model: str = ""

    def __init__(self, token: str, model: Optional[str] = None, timeout: Optional[int] = None):
        self.token = token
        self.model = model or self.default_model
        self.timeout = timeout or settings.provider_timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **self.provider_headers(),
        }

    def provider_headers(self) -> Dict[str, str]:
        return {}

    def build_request_body(self, prompt: str, system_message: str = "") -> Dict[str, Any]:
        raise NotImplementedError

    def extract_response(self, data: Dict[str, Any]) -> Optional[str]:
        raise NotImplementedError

    def send(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST the body and return the decoded JSON response."""
        raise NotImplementedError

    def request(self, prompt: str, system_message: str = "") -> ProviderResponse:
        start = time.perf_counter()

        body = self.build_request_body(prompt, system_message)
        data = self.send(body)

        text = self.extract_response(data)
        if not text:
            raise ProviderError("Could not extract response from API result")

        duration = time.perf_counter() - start
        metrics.timing(f"provider.{self.name}.latency", duration)

        return ProviderResponse(
            response=text,
            provider=self.name,
            processing_time=duration,
            raw_response=data,
        )

    def test_connection(self) -> bool:
        try:
            result = self.request(TEST_PROMPT, TEST_SYSTEM_MESSAGE)
        except ProviderError as e:
            raise ProviderError(f"Connection test failed: {e}") from e
        return bool(result.response)


class ChatCompletionsProvider(BaseProvider):
    """OpenAI-compatible chat-completions API, called through the OpenAI SDK."""

    base_url: str = ""

    def __init__(
        self,
        token: str,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        super().__init__(token, model=model, timeout=timeout)
        if client is not None:
            self.client = client
            return
        try:
            self.client = OpenAI(
                api_key=token,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers={
                    k: v for k, v in self.headers.items()
                    if k not in ("Authorization", "Content-Type")
                },
            )
        except OpenAIError as e:
            raise ProviderError(f"API client setup failed: {e}") from e

    @property
    def endpoint(self) -> str:
        return self.base_url.rstrip("/") + "/chat/completions"

    def provider_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def build_request_body(self, prompt: str, system_message: str = "") -> Dict[str, Any]:
        messages = []
        if system_message:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": prompt})

        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def extract_response(self, data: Dict[str, Any]) -> Optional[str]:
        return _dig(data, "choices", 0, "message", "content")

    def send(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            completion = self.client.chat.completions.create(**body)
        except APIStatusError as e:
            logger.warning(f"{self.name} returned HTTP {e.status_code}")
            raise ProviderError(http_error_message(e.status_code, e.response.text)) from e
        except (APIResponseValidationError, json.JSONDecodeError) as e:
            raise ProviderError(f"Invalid JSON response: {e}") from e
        except OpenAIError as e:
            raise ProviderError(f"API request failed: {e}") from e

        data = completion.model_dump() if hasattr(completion, "model_dump") else completion
        if not data:
            raise ProviderError("Invalid JSON response: empty body")
        return data


class OpenAIProvider(ChatCompletionsProvider):
    name = "openai"
    base_url = "https://api.openai.com/v1"
    default_model = "gpt-3.5-turbo"


class OpenRouterProvider(ChatCompletionsProvider):
    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"
    default_model = "openai/gpt-3.5-turbo"

    def provider_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "HTTP-Referer": settings.site_url,
            "X-Title": "AI Comment Guard",
        }


class AnthropicProvider(BaseProvider):
    """Anthropic messages API over plain HTTPS."""

    name = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"
    default_model = "claude-3-haiku-20240307"
    api_version = "2023-06-01"

    def __init__(
        self,
        token: str,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(token, model=model, timeout=timeout)
        self.session = session or requests.Session()

    def provider_headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.token,
            "anthropic-version": self.api_version,
        }

    def build_request_body(self, prompt: str, system_message: str = "") -> Dict[str, Any]:
        # The system message is folded into the single user turn
        content = f"{system_message}\n\n{prompt}" if system_message else prompt

        return {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {"role": "user", "content": content},
            ],
        }

    def extract_response(self, data: Dict[str, Any]) -> Optional[str]:
        return _dig(data, "content", 0, "text")

    def send(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                self.endpoint,
                data=json.dumps(body),
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"API request failed: {e}") from e

        if resp.status_code != 200:
            logger.warning(f"{self.name} returned HTTP {resp.status_code}")
            raise ProviderError(http_error_message(resp.status_code, resp.text))

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON response: {e}") from e

        if not data:
            raise ProviderError("Invalid JSON response: empty body")
        return data
