import codecs
import json
from typing import Iterable, Iterator, List

from ..schemas.api import ProviderEvent

DONE_EVENT = "data: [DONE]\n\n"

_SKIP = ProviderEvent(kind="skip")
_DONE = ProviderEvent(kind="done")


class SSELineDecoder:
    """把任意切分的 bytes 块还原成完整文本行。

    - 增量 UTF-8 解码：多字节字符跨块时不会被截断。
    - 块末尾未以换行结束的半行暂存，拼到下一块前面再切分。
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        parts = self._buffer.split("\n")
        self._buffer = parts.pop()
        return [p.rstrip("\r") for p in parts]

    def flush(self) -> List[str]:
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer.rstrip("\r"), ""
        return [rest] if rest else []


def iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    decoder = SSELineDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.flush()


def _extract_content(obj) -> str:
    if not isinstance(obj, dict):
        return ""
    direct = obj.get("content")
    if isinstance(direct, str):
        return direct
    # OpenAI / Groq chunk: {"choices":[{"delta":{"content": "..."}}]}
    choices = obj.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        for key in ("delta", "message"):
            part = choices[0].get(key)
            if isinstance(part, dict) and isinstance(part.get("content"), str):
                return part["content"]
    return ""


def parse_provider_line(line: str) -> ProviderEvent:
    """Decode one provider line; anything unusable comes back as kind="skip"."""
    line = line.strip()
    if not line.startswith("data:"):
        return _SKIP
    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return _DONE
    try:
        obj = json.loads(data)
    except ValueError:
        return _SKIP
    content = _extract_content(obj)
    if not content:
        return _SKIP
    return ProviderEvent(kind="content", content=content)


def format_fragment(content: str) -> str:
    return f"data: {json.dumps({'content': content}, ensure_ascii=False)}\n\n"
