"""Chat completion client for the pothole assistant."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Iterator
from typing import TypedDict
from urllib import request
from urllib.error import HTTPError, URLError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.cerebras.ai/v1/chat/completions"
DEFAULT_MODEL = "llama-3.3-70b"
SYSTEM_PROMPT = (
    "You are a pothole expert AI assistant helping users understand road "
    "damage, pothole detection, and prevention methods. Provide informative, "
    "accurate and concise responses about pothole-related topics. Include "
    "technical details when appropriate."
)
FALLBACK_REPLY = (
    "Sorry, I encountered an error while processing your request. "
    "Please try again later."
)
EMPTY_REPLY = "I couldn't generate a response. Please try again."
DONE_SENTINEL = "[DONE]"


class ChatMessage(TypedDict):
    role: str
    content: str


class ChatCompletionError(RuntimeError):
    """Raised when the completion endpoint cannot be reached or parsed."""


def parse_sse_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield delta contents from ``data: {...}`` lines until ``[DONE]``."""
    for raw_line in lines:
        line = raw_line.strip()
        if not line.startswith("data:"):
            continue
        payload = line[5:].strip()
        if payload == DONE_SENTINEL:
            return
        try:
            chunk = json.loads(payload)
            content = chunk["choices"][0].get("delta", {}).get("content") or ""
        except (ValueError, KeyError, IndexError, AttributeError) as error:
            logger.error("Error parsing SSE data: %s", error)
            continue
        if content:
            yield content


class CerebrasChatClient:
    """Streams and non-streams completions over plain HTTP."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        timeout_sec: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._model = model
        self._timeout_sec = timeout_sec

    def build_payload(
        self,
        messages: list[ChatMessage],
        stream: bool,
        max_completion_tokens: int = 1024,
        temperature: float = 0.2,
        top_p: float = 1.0,
    ) -> dict[str, object]:
        return {
            "model": self._model,
            "messages": [{"role": "system", "content": SYSTEM_PROMPT}, *messages],
            "stream": stream,
            "max_completion_tokens": max_completion_tokens,
            "temperature": temperature,
            "top_p": top_p,
        }

    def complete(self, messages: list[ChatMessage]) -> str:
        payload = self.build_payload(messages, stream=False)
        try:
            with self._open(payload) as response:
                data = json.loads(response.read().decode("utf-8"))
        except (ChatCompletionError, HTTPError, URLError, OSError, ValueError) as error:
            logger.error("Error getting AI response: %s", error)
            return FALLBACK_REPLY

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        return content or EMPTY_REPLY

    def stream(
        self,
        messages: list[ChatMessage],
        cancel_event: threading.Event | None = None,
    ) -> Iterator[str]:
        """Yield content chunks; stops early once ``cancel_event`` is set."""
        payload = self.build_payload(
            messages, stream=True, max_completion_tokens=2048
        )
        try:
            with self._open(payload) as response:
                lines = (raw.decode("utf-8", errors="replace") for raw in response)
                for content in parse_sse_lines(lines):
                    if cancel_event is not None and cancel_event.is_set():
                        logger.info("Chat stream cancelled")
                        return
                    yield content
        except (HTTPError, URLError, OSError) as error:
            logger.error("Error streaming AI response: %s", error)
            raise ChatCompletionError(str(error)) from error

    def _open(self, payload: dict[str, object]):
        if not self._api_key:
            raise ChatCompletionError("Chat API key is not configured")
        req = request.Request(
            url=self._api_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )
        return request.urlopen(req, timeout=self._timeout_sec)
