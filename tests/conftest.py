from neurostudy.llm.errors import LLMTransportError


class FakeLLMClient:
    """In-process stand-in for LLMClient.

    chunks:       byte chunks the streaming call yields, in order
    stream_error: raised when the stream is opened (before any chunk)
    fail_after:   raise a transport error after this many chunks
    answer:       single-shot result (or an exception instance to raise)
    """

    model = "primary-model"
    fallback_model = "fallback-model"

    def __init__(self, chunks=None, stream_error=None, fail_after=None, answer=""):
        self.chunks = list(chunks or [])
        self.stream_error = stream_error
        self.fail_after = fail_after
        self.answer = answer
        self.stream_calls = []
        self.complete_calls = []
        self.stream_closed = False

    def stream_chat(self, messages):
        self.stream_calls.append(messages)

        def gen():
            try:
                if self.stream_error is not None:
                    raise self.stream_error
                for i, chunk in enumerate(self.chunks):
                    if self.fail_after is not None and i == self.fail_after:
                        raise LLMTransportError("connection reset mid-stream")
                    yield chunk
            finally:
                self.stream_closed = True

        return gen()

    def complete(self, messages, json_mode=False, model=None, temperature=None):
        self.complete_calls.append({"messages": messages, "json_mode": json_mode, "model": model})
        if isinstance(self.answer, BaseException):
            raise self.answer
        if isinstance(self.answer, list):
            nxt = self.answer.pop(0)
            if isinstance(nxt, BaseException):
                raise nxt
            return nxt
        return self.answer

    def list_models(self):
        return {"data": [{"id": self.model}, {"id": self.fallback_model}]}


def sse(*payloads: str) -> bytes:
    return "".join(f"data: {p}\n\n" for p in payloads).encode("utf-8")
