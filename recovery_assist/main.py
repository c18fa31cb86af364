"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from .chat_client import ChatClient, ChatReply, ChatServiceError
from .context import describe_context, extract_page_context, simplify_context
from .logging_setup import configure_logging
from .schemas import PageContext
from .scrape import PageFetchError, snapshot_from_url
from .snapshot import HtmlSnapshot, PageSnapshot, SectionBox, Viewport

LOG_FILE_PATH = configure_logging(os.getenv("LOG_LEVEL"))
logger = logging.getLogger(__name__)
logger.info("Logging configured. File output: %s", LOG_FILE_PATH)

app = FastAPI(title="Recovery Assist Page Context Service")


class SectionLayout(BaseModel):
    id: str = Field(min_length=1)
    top: float
    height: float = Field(ge=0.0)


class PageRequest(BaseModel):
    url: str = Field(min_length=1)
    html: Optional[str] = None
    scroll_y: float = 0.0
    viewport_height: float = Field(default=0.0, ge=0.0)
    sections: List[SectionLayout] = Field(default_factory=list)


class AssistRequest(PageRequest):
    message: str = Field(min_length=1)
    conversation_id: Optional[str] = None
    is_first_message: bool = False


class AssistResponse(BaseModel):
    reply: ChatReply
    context: Dict[str, Any]
    summary: Optional[str] = None


def get_chat_client() -> ChatClient:
    return ChatClient()


def _build_snapshot(request: PageRequest) -> PageSnapshot:
    viewport = Viewport(scroll_y=request.scroll_y, height=request.viewport_height)
    layout = {section.id: SectionBox(top=section.top, height=section.height) for section in request.sections}
    if request.html is not None:
        return HtmlSnapshot(request.url, request.html, viewport=viewport, layout=layout)
    try:
        return snapshot_from_url(request.url, viewport=viewport, layout=layout)
    except PageFetchError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


def _extract(request: PageRequest) -> PageContext:
    start = time.perf_counter()
    context = extract_page_context(_build_snapshot(request))
    logger.info(
        "Extracted page context for %s in %.0f ms (primary topic: %s)",
        context.url,
        (time.perf_counter() - start) * 1000,
        context.primary_topic or "none",
    )
    return context


@app.post("/api/page-context")
def page_context(request: PageRequest) -> Dict[str, Any]:
    return _extract(request).to_dict()


@app.post("/api/page-context/simplified")
def simplified_page_context(request: PageRequest) -> Dict[str, str]:
    return simplify_context(_extract(request)).as_dict()


@app.post("/api/assist", response_model=AssistResponse)
def assist(request: AssistRequest, client: ChatClient = Depends(get_chat_client)) -> AssistResponse:
    context = _extract(request)
    try:
        reply = client.ask(
            request.message,
            context,
            conversation_id=request.conversation_id,
            is_first_message=request.is_first_message,
        )
    except ChatServiceError as exc:
        logger.warning("Chat backend failed for %s: %s", context.url, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return AssistResponse(reply=reply, context=simplify_context(context).as_dict(), summary=describe_context(context))
