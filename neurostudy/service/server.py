from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse, JSONResponse
from starlette.concurrency import iterate_in_threadpool
from functools import lru_cache
from typing import List
import logging

from ..schemas.api import (
    ChatRequest,
    SimpleChatResponse,
    GenerateCardsRequest,
    Flashcard,
    QuizRequest,
    QuizQuestion,
)
from ..config.settings import get_settings
from ..llm.client import LLMClient
from ..llm.errors import LLMError
from ..relay.chat_relay import ChatRelay
from ..study.flashcards import generate_flashcards
from ..study.quiz import build_quiz
from ..utils.diagnostics import run_all as run_diagnostics
import random

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

app = FastAPI(title="NeuroStudy Relay", version=settings.api_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no"
}


@lru_cache()
def get_llm_client() -> LLMClient:
    """进程级 LLM 客户端：首次使用时按配置构造，之后复用。"""
    return LLMClient.from_settings(get_settings())


def get_relay(client: LLMClient = Depends(get_llm_client)) -> ChatRelay:
    return ChatRelay.from_settings(client, get_settings())


@app.get("/health")
def health():
    return {"status": "ok", "api_version": settings.api_version}


@app.get("/diagnostics")
def diagnostics(client: LLMClient = Depends(get_llm_client)):
    return run_diagnostics(client)


@app.post("/api/chat")
async def chat(req: ChatRequest, request: Request, relay: ChatRelay = Depends(get_relay)):
    """SSE 流式回答。

    事件格式：data: {"content":"..."}\n\n
    结束：data: [DONE]\n\n（回退与失败提示同样以 content 事件送达，不会出现裸错误）
    """
    events = relay.stream_events(req)

    async def event_stream():
        try:
            async for frame in iterate_in_threadpool(events):
                if await request.is_disconnected():
                    logger.info("[chat] client disconnected, closing provider stream")
                    break
                yield frame
        finally:
            events.close()

    return StreamingResponse(event_stream(), headers=SSE_HEADERS, media_type="text/event-stream")


@app.post("/api/chat-simple", response_model=SimpleChatResponse)
def chat_simple(req: ChatRequest, relay: ChatRelay = Depends(get_relay)):
    return SimpleChatResponse(content=relay.complete_chat(req))


@app.post("/api/generate-cards", response_model=List[Flashcard])
def generate_cards(req: GenerateCardsRequest, client: LLMClient = Depends(get_llm_client)):
    try:
        return generate_flashcards(client, req.documentContent, req.title, req.existingQuestions)
    except LLMError as e:
        logger.error("[cards] generation failed: %s", e)
        return JSONResponse({"error": "Failed to generate cards"}, status_code=502)


@app.post("/api/generate-quiz", response_model=List[QuizQuestion])
def generate_quiz(req: QuizRequest):
    if not req.cards:
        raise HTTPException(status_code=400, detail="cards must not be empty")
    rng = random.Random(req.seed) if req.seed is not None else None
    return build_quiz(req.cards, distractors=get_settings().quiz_distractors, rng=rng)
