from typing import Optional


class LLMError(Exception):
    """Base class for provider call failures."""


class LLMTransportError(LLMError):
    """Connection refused, DNS failure, timeout, dropped socket."""


class LLMStatusError(LLMError):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"provider returned HTTP {status_code}: {body[:200]}")


class LLMResponseError(LLMError):
    """Body arrived but could not be used (bad JSON, missing fields, empty answer)."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = raw
        super().__init__(message)
