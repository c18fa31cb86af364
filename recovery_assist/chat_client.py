"""Client for the chat backend's ``POST /api/chat`` endpoint."""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .context import simplify_context
from .schemas import PageContext

logger = logging.getLogger(__name__)

CHAT_API_BASE_URL = os.getenv("CHAT_API_BASE_URL", "http://localhost:3001")
CHAT_API_TIMEOUT = float(os.getenv("CHAT_API_TIMEOUT", "15") or 0) or 15.0
CHAT_ENDPOINT = "/api/chat"


class ChatServiceError(RuntimeError):
    """Raised when the chat backend cannot produce a usable reply."""


class _RetryableChatError(ChatServiceError):
    """Transient failure: connection problems or a 5xx response."""


class ChatReply(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    response: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    bias: bool = False
    uncertainty: bool = False
    grounded: Optional[bool] = None
    intent: Optional[str] = None
    is_greeting: bool = Field(default=False, alias="isGreeting")
    handoff: Optional[Dict[str, Any]] = None


def build_chat_payload(
    message: str,
    context: PageContext,
    conversation_id: str | None = None,
    is_first_message: bool = False,
) -> dict[str, Any]:
    """Shape a chat request the way the front-end widget sends it."""

    return {
        "message": message.strip(),
        "conversationId": conversation_id,
        "context": simplify_context(context).as_dict(),
        "pageUrl": urlparse(context.url).path or "/",
        "isFirstMessage": is_first_message,
    }


def _chat_retry() -> callable:
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(_RetryableChatError),
    )


class ChatClient:
    def __init__(
        self,
        base_url: str = CHAT_API_BASE_URL,
        timeout: float = CHAT_API_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = urljoin(base_url.rstrip("/") + "/", CHAT_ENDPOINT.lstrip("/"))
        self.timeout = timeout
        self.session = session or requests.Session()

    @_chat_retry()
    def _post(self, payload: dict[str, Any]) -> Any:
        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning("Chat backend unreachable at %s: %s", self.endpoint, exc)
            raise _RetryableChatError(f"Chat backend unreachable: {exc}") from exc
        except requests.RequestException as exc:
            raise ChatServiceError(f"Chat request failed: {exc}") from exc

        if response.status_code >= 500:
            logger.warning("Chat backend returned %s", response.status_code)
            raise _RetryableChatError(f"Chat backend returned {response.status_code}")
        if response.status_code != 200:
            raise ChatServiceError(f"Chat backend rejected request with {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise ChatServiceError("Chat backend returned invalid JSON") from exc

    def send(self, payload: dict[str, Any]) -> ChatReply:
        start = time.perf_counter()
        data = self._post(payload)
        try:
            reply = ChatReply.model_validate(data)
        except ValidationError as exc:
            logger.error("Chat reply failed validation: %s", exc)
            raise ChatServiceError("Chat backend reply did not match the expected schema") from exc
        logger.info(
            "Chat reply received in %.2fs (intent=%s, confidence=%s)",
            time.perf_counter() - start,
            reply.intent,
            reply.confidence,
        )
        return reply

    def ask(
        self,
        message: str,
        context: PageContext,
        conversation_id: str | None = None,
        is_first_message: bool = False,
    ) -> ChatReply:
        return self.send(build_chat_payload(message, context, conversation_id, is_first_message))
