# NeuroStudy Relay Configuration Settings
# License: MIT (see LICENSE)
# This file is part of NeuroStudy Relay. Redistribution must retain this notice.

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    # Pydantic v2: prefer alias for environment variable mapping
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ---- API Version ----
    # Bump this when breaking API response contracts or adding notable features
    api_version: str = Field("0.1.0", alias="API_VERSION")

    # ---- LLM provider (OpenAI compatible, Groq by default) ----
    llm_base_url: str = Field("https://api.groq.com/openai", alias="LLM_BASE_URL")
    llm_api_key: str = Field("", alias="GROQ_API_KEY")
    llm_model: str = Field("llama-3.3-70b-versatile", alias="LLM_MODEL")
    # single-shot fallback model; empty means reuse llm_model
    llm_fallback_model: Optional[str] = Field(None, alias="LLM_FALLBACK_MODEL")
    llm_temperature: float = Field(0.3, alias="LLM_TEMPERATURE")
    # (connect, read) timeout pair for every provider call, seconds
    llm_connect_timeout: float = Field(10.0, alias="LLM_CONNECT_TIMEOUT")
    llm_read_timeout: float = Field(120.0, alias="LLM_READ_TIMEOUT")

    # ---- Chat relay ----
    chat_context_max_chars: int = Field(30000, alias="CHAT_CONTEXT_MAX_CHARS")
    chat_failure_message: str = Field("Uplink Failure: System Offline.", alias="CHAT_FAILURE_MESSAGE")

    # ---- Flashcards / quiz ----
    cards_context_max_chars: int = Field(30000, alias="CARDS_CONTEXT_MAX_CHARS")
    cards_count: int = Field(30, alias="CARDS_COUNT")
    cards_avoid_max: int = Field(20, alias="CARDS_AVOID_MAX")  # 发送给模型的"勿重复"问题条数
    cards_max_retries: int = Field(3, alias="CARDS_MAX_RETRIES")
    quiz_distractors: int = Field(3, alias="QUIZ_DISTRACTORS")

    # ---- Service ----
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    @property
    def fallback_model(self) -> str:
        return self.llm_fallback_model or self.llm_model

    @property
    def llm_timeout(self) -> tuple:
        return (self.llm_connect_timeout, self.llm_read_timeout)

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(',') if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
