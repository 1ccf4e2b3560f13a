from neurostudy.relay.sse import (
    DONE_EVENT,
    SSELineDecoder,
    format_fragment,
    iter_lines,
    parse_provider_line,
)


def test_partial_line_carried_to_next_chunk():
    dec = SSELineDecoder()
    assert dec.feed(b'data: {"content":"Pho') == []
    assert dec.feed(b'to"}\ndata: [DO') == ['data: {"content":"Photo"}']
    assert dec.feed(b'NE]\n') == ['data: [DONE]']
    assert dec.flush() == []


def test_utf8_split_across_chunks():
    raw = 'data: {"content":"光合作用"}\n'.encode("utf-8")
    # cut inside the first multi-byte character
    cut = raw.index("光".encode("utf-8")) + 1
    lines = list(iter_lines([raw[:cut], raw[cut:]]))
    assert lines == ['data: {"content":"光合作用"}']


def test_crlf_and_unterminated_tail():
    lines = list(iter_lines([b'data: {"content":"a"}\r\n', b'data: {"content":"b"}']))
    assert lines == ['data: {"content":"a"}', 'data: {"content":"b"}']


def test_parse_plain_content_payload():
    ev = parse_provider_line('data: {"content":"Photo"}')
    assert ev.kind == "content"
    assert ev.content == "Photo"


def test_parse_openai_delta_payload():
    ev = parse_provider_line('data: {"choices":[{"delta":{"content":"syn"}}]}')
    assert ev.kind == "content"
    assert ev.content == "syn"


def test_parse_done_and_skips():
    assert parse_provider_line("data: [DONE]").kind == "done"
    assert parse_provider_line("data: {not json").kind == "skip"
    assert parse_provider_line(": keep-alive").kind == "skip"
    assert parse_provider_line("event: message").kind == "skip"
    assert parse_provider_line("").kind == "skip"
    # role-only first chunk carries no text
    assert parse_provider_line('data: {"choices":[{"delta":{"role":"assistant"}}]}').kind == "skip"


def test_content_whitespace_preserved():
    ev = parse_provider_line('data: {"content":"  is "}')
    assert ev.content == "  is "


def test_format_fragment():
    assert format_fragment('say "hi"\n') == 'data: {"content": "say \\"hi\\"\\n"}\n\n'
    assert DONE_EVENT == "data: [DONE]\n\n"
