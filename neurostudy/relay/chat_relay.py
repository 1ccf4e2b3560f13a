import logging
from typing import Iterator, List

from ..schemas.api import ChatRequest, StreamFragment
from ..utils.text import truncate_text
from .sse import DONE_EVENT, format_fragment, iter_lines, parse_provider_line

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Uplink Failure: System Offline."


class ChatRelay:
    """Study-assistant chat relay.

    streaming -> (success | stream failed) -> (done | single-shot fallback -> (success | canned notice))

    - 流式调用在产出第一个片段前失败：不重试流，改走一次非流式调用；
      再失败则产出固定失败提示。
    - 已经产出片段后断流：已发送内容保留，不重试、不回退，直接结束本轮。
    - 任何情况下 stream_events 都以且仅以一个 [DONE] 结束（调用方断开除外）。
    """

    def __init__(self, client, context_max_chars: int = 30000, failure_message: str = DEFAULT_FAILURE_MESSAGE):
        self._client = client
        self.context_max_chars = context_max_chars
        self.failure_message = failure_message

    @classmethod
    def from_settings(cls, client, settings) -> "ChatRelay":
        return cls(
            client,
            context_max_chars=settings.chat_context_max_chars,
            failure_message=settings.chat_failure_message,
        )

    def build_messages(self, req: ChatRequest) -> List[dict]:
        context = truncate_text(req.documentContent, self.context_max_chars)
        msgs = [{"role": "system", "content": f"Study Assistant context:\n{context}"}]
        for turn in req.conversationHistory or []:
            msgs.append({"role": turn.role, "content": turn.content})
        msgs.append({"role": "user", "content": req.message})
        return msgs

    def _stream_provider(self, messages: List[dict]) -> Iterator[StreamFragment]:
        chunks = self._client.stream_chat(messages)
        try:
            for line in iter_lines(chunks):
                event = parse_provider_line(line)
                if event.kind == "done":
                    break
                if event.kind == "content":
                    yield StreamFragment(content=event.content)
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

    def _single_shot(self, messages: List[dict]) -> str:
        try:
            answer = self._client.complete(messages, model=self._client.fallback_model)
        except Exception as e:
            logger.error("[chat-relay] single-shot call failed: %s", e)
            return self.failure_message
        if not answer or not answer.strip():
            logger.error("[chat-relay] single-shot call returned empty content")
            return self.failure_message
        return answer

    def stream_chat(self, req: ChatRequest) -> Iterator[StreamFragment]:
        messages = self.build_messages(req)
        logger.info("[chat-relay] stream start history=%d context_chars=%d",
                    len(req.conversationHistory or []), len(req.documentContent))
        produced = 0
        provider = self._stream_provider(messages)
        try:
            for fragment in provider:
                produced += 1
                yield fragment
        except Exception as e:
            if produced:
                logger.warning("[chat-relay] stream dropped after %d fragments, ending turn: %s", produced, e)
                return
            logger.warning("[chat-relay] stream failed before first fragment, falling back: %s", e)
        else:
            if not produced:
                logger.warning("[chat-relay] stream ended without content, falling back")
        finally:
            provider.close()
        if produced:
            return
        yield StreamFragment(content=self._single_shot(messages))

    def stream_events(self, req: ChatRequest) -> Iterator[str]:
        """Wire format: data: {"content": ...} events followed by one data: [DONE]."""
        fragments = self.stream_chat(req)
        try:
            for fragment in fragments:
                yield format_fragment(fragment.content)
        finally:
            fragments.close()
        yield DONE_EVENT

    def complete_chat(self, req: ChatRequest) -> str:
        return self._single_shot(self.build_messages(req))
