import json
import logging
import re
from typing import List, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config.settings import get_settings
from ..llm.errors import LLMError, LLMResponseError, LLMStatusError
from ..schemas.api import Flashcard
from ..utils.text import truncate_text

logger = logging.getLogger(__name__)

# 可在测试中替换为 wait_none()
_retry_wait = wait_exponential(multiplier=1, min=1, max=8)


def _is_retryable(exc: BaseException) -> bool:
    # 4xx（鉴权失败、参数错误）重试无意义；429 与 5xx 值得再试
    if isinstance(exc, LLMStatusError):
        return exc.status_code == 429 or exc.status_code >= 500
    return isinstance(exc, LLMError)


def build_card_messages(document: str, title: str, existing_questions: Optional[List[str]] = None, settings=None) -> List[dict]:
    settings = settings or get_settings()
    context = truncate_text(document, settings.cards_context_max_chars, "... (truncated)")
    existing = [q for q in (existing_questions or []) if q and q.strip()]
    avoid = ""
    if existing and settings.cards_avoid_max > 0:
        avoid = f"DO NOT REPEAT these questions: {', '.join(existing[-settings.cards_avoid_max:])}."
    system = (
        f"You are an academic expert. Create exactly {settings.cards_count} unique flashcards based on the text. "
        "If the text is short, use your knowledge to provide 10 additional \"Advanced Context\" cards. "
        f"{avoid} "
        "Return ONLY a JSON object: { \"cards\": [{ \"question\": \"...\", \"answer\": \"...\" }] }"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f"Document: {title}\nContent: {context}"},
    ]


def parse_cards(raw: str, existing_questions: Optional[List[str]] = None) -> List[Flashcard]:
    """解析模型返回的 JSON。

    接受 {"cards": [...]} 或直接数组；缺字段/空白的条目丢弃，
    与 existing_questions（忽略大小写）或本批内重复的问题丢弃。
    完全无法解析时抛出 LLMResponseError（上层据此重试）。
    """
    text = (raw or "").strip()
    data = None
    try:
        data = json.loads(text)
    except ValueError:
        # 模型偶尔在 JSON 外包一层说明文字 / 代码块
        m = re.search(r"[\{\[].*[\}\]]", text, re.DOTALL)
        if m:
            try:
                data = json.loads(m.group())
            except ValueError:
                data = None
    if isinstance(data, dict):
        items = data.get("cards")
    else:
        items = data
    if not isinstance(items, list):
        raise LLMResponseError("no cards array in model output", raw=text[:500])
    seen = {q.strip().lower() for q in (existing_questions or []) if isinstance(q, str)}
    cards: List[Flashcard] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        q = item.get("question")
        a = item.get("answer")
        if not isinstance(q, str) or not isinstance(a, str) or not q.strip() or not a.strip():
            continue
        key = q.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        cards.append(Flashcard(question=q.strip(), answer=a.strip()))
    return cards


def generate_flashcards(client, document: str, title: str = "", existing_questions: Optional[List[str]] = None, settings=None) -> List[Flashcard]:
    settings = settings or get_settings()
    messages = build_card_messages(document, title, existing_questions, settings)
    retrying = Retrying(
        stop=stop_after_attempt(max(1, settings.cards_max_retries)),
        wait=_retry_wait,
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                logger.warning("[cards] retry attempt %d", attempt.retry_state.attempt_number)
            raw = client.complete(messages, json_mode=True)
            cards = parse_cards(raw, existing_questions)
    logger.info("[cards] generated %d cards for %r", len(cards), title)
    return cards
