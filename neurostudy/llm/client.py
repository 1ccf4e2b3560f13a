import logging
import requests
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import LLMResponseError, LLMStatusError, LLMTransportError

logger = logging.getLogger(__name__)


class LLMClient:
    """OpenAI 兼容 chat-completions 接口客户端（默认 Groq）。

    进程启动时按配置构造一次，之后以依赖注入方式交给 relay / 生成逻辑复用；
    本身不持有可变状态，可被并发请求共享。

    - stream_chat: 流式调用，按到达顺序产出原始 bytes 块（SSE 解析交给 relay）。
    - complete:    非流式调用，返回 choices[0].message.content。
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        fallback_model: Optional[str] = None,
        temperature: float = 0.3,
        timeout: Tuple[float, float] = (10.0, 120.0),
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.model = model
        self.fallback_model = fallback_model or model
        self.temperature = temperature
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "LLMClient":
        return cls(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            fallback_model=settings.fallback_model,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout,
        )

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/v1/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[dict], stream: bool, model: Optional[str] = None, temperature: Optional[float] = None) -> dict:
        return {
            "model": model or self.model,
            "messages": messages,
            "stream": stream,
            "temperature": self.temperature if temperature is None else temperature,
        }

    def stream_chat(self, messages: List[dict]) -> Iterator[bytes]:
        """打开流式请求并逐块产出响应体。

        生成器被关闭（调用方断开）时 with 块负责释放底层连接。
        连接错误 / 超时 -> LLMTransportError；非 2xx -> LLMStatusError。
        """
        payload = self._payload(messages, stream=True)
        try:
            r = requests.post(self.completions_url, json=payload, headers=self._headers(), stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMTransportError(str(e)) from e
        with r:
            if r.status_code >= 400:
                raise LLMStatusError(r.status_code, r.text or "")
            try:
                for chunk in r.iter_content(chunk_size=None):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                raise LLMTransportError(str(e)) from e

    def complete(self, messages: List[dict], json_mode: bool = False, model: Optional[str] = None, temperature: Optional[float] = None) -> str:
        payload = self._payload(messages, stream=False, model=model, temperature=temperature)
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        try:
            r = requests.post(self.completions_url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMTransportError(str(e)) from e
        if r.status_code >= 400:
            raise LLMStatusError(r.status_code, r.text or "")
        try:
            js = r.json()
            content = js['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(f"unexpected completion body: {e}", raw=getattr(r, 'text', None)) from e
        if not isinstance(content, str):
            raise LLMResponseError("completion content is not a string")
        return content

    def list_models(self) -> dict:
        url = f"{self.base_url}/v1/models"
        try:
            r = requests.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMTransportError(str(e)) from e
        if r.status_code >= 400:
            raise LLMStatusError(r.status_code, r.text or "")
        return r.json()
