from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str
    # 作为 grounding context 原样注入 system prompt（超长时截断）
    documentContent: str
    # 会话历史，按时间顺序（旧 -> 新），由调用方截断到最近 N 轮
    conversationHistory: Optional[List[ChatTurn]] = Field(default_factory=list)

    @field_validator("message", "documentContent")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("conversationHistory", mode="before")
    @classmethod
    def _default_history(cls, v):
        return [] if v is None else v


class StreamFragment(BaseModel):
    content: str


class SimpleChatResponse(BaseModel):
    content: str


class ProviderEvent(BaseModel):
    """One decoded provider line: content / done / skip (unparseable or irrelevant)."""
    kind: Literal["content", "done", "skip"]
    content: str = ""


class Flashcard(BaseModel):
    question: str
    answer: str


class GenerateCardsRequest(BaseModel):
    documentContent: str
    title: str = ""
    existingQuestions: Optional[List[str]] = Field(default_factory=list)

    @field_validator("documentContent")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("existingQuestions", mode="before")
    @classmethod
    def _default_existing(cls, v):
        return [] if v is None else v


class QuizRequest(BaseModel):
    cards: List[Flashcard]
    seed: Optional[int] = None


class QuizQuestion(BaseModel):
    question: str
    answer: str
    options: List[str]
