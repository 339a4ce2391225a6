"""Stream Assembler — live previews while streaming, one final parse at the end.

Tests:
    - One StreamProgress per text fragment, then exactly one StreamResult
    - Previews never include any part of the <design_extract> block
    - on_progress hook sees the same previews
    - Usage: input from the first event carrying it, output from the latest
    - Malformed accounting and unknown events are ignored
    - Transport errors propagate
    - Anthropic adapter and single-shot path produce the same result shape
"""

import pytest

from archlens.services.stream_assembler import (
    StreamProgress,
    StreamResult,
    TextDelta,
    TokenUsage,
    UsageDelta,
    assemble_single_shot,
    assemble_stream,
    events_from_anthropic,
    text_from_message,
)

from tests.services.mock_anthropic import extract_block, text_response


async def _events(*items):
    for item in items:
        if isinstance(item, Exception):
            raise item
        yield item


async def _collect(stream):
    return [item async for item in stream]


async def test_progress_per_fragment_then_single_result():
    items = await _collect(assemble_stream(_events(
        TextDelta("Hello "), TextDelta("world"),
    )))
    assert [type(i) for i in items] == [StreamProgress, StreamProgress, StreamResult]
    assert [i.visible_text for i in items[:2]] == ["Hello", "Hello world"]
    assert items[-1].text == "Hello world"
    assert items[-1].usage is None


async def test_extract_block_never_leaks_into_previews():
    chunks = [
        "Use WebSockets.", "\n<design_", 'extract>{"new_options": [{"title": ',
        '"WebSockets"}]}', "</design_extract>",
    ]
    seen = []
    items = await _collect(assemble_stream(
        _events(*(TextDelta(c) for c in chunks)), on_progress=seen.append,
    ))
    previews = [i.visible_text for i in items if isinstance(i, StreamProgress)]
    assert seen == previews
    assert previews == ["Use WebSockets."] * len(chunks)
    result = items[-1]
    assert result.text == "Use WebSockets."
    assert result.parse_error is None
    assert result.extract.new_options[0].title == "WebSockets"


async def test_empty_fragments_are_skipped():
    items = await _collect(assemble_stream(_events(TextDelta(""), TextDelta("a"))))
    assert len(items) == 2


async def test_usage_first_input_latest_output():
    items = await _collect(assemble_stream(_events(
        UsageDelta(input_tokens=120, output_tokens=1),
        TextDelta("x"),
        UsageDelta(input_tokens=999, output_tokens=30),
        UsageDelta(output_tokens=42),
    )))
    assert items[-1].usage == TokenUsage(120, 42)


async def test_malformed_usage_and_unknown_events_are_ignored():
    items = await _collect(assemble_stream(_events(
        UsageDelta(input_tokens="lots", output_tokens=-3),
        UsageDelta(input_tokens=True),
        {"type": "ping"},
        TextDelta("ok"),
    )))
    assert items[-1].text == "ok"
    assert items[-1].usage is None


async def test_transport_error_propagates():
    stream = assemble_stream(_events(TextDelta("partial"), ConnectionError("reset")))
    with pytest.raises(ConnectionError):
        await _collect(stream)


async def test_parse_failure_reported_in_result():
    items = await _collect(assemble_stream(_events(
        TextDelta("Answer\n<design_extract>{oops}</design_extract>"),
    )))
    assert items[-1].text == "Answer"
    assert items[-1].parse_error is not None
    assert items[-1].extract.is_empty


async def test_anthropic_adapter_maps_sdk_events():
    stream = text_response("Hi ", "there", tokens=(80, 12))
    items = await _collect(assemble_stream(events_from_anthropic(stream)))
    assert items[-1].text == "Hi there"
    assert items[-1].usage == TokenUsage(80, 12)


async def test_anthropic_adapter_without_usage():
    stream = text_response("Hi", with_usage=False)
    items = await _collect(assemble_stream(events_from_anthropic(stream)))
    assert items[-1].usage is None


async def test_single_shot_matches_streamed_shape():
    raw = "Pick Kafka." + extract_block('{"new_decisions": [{"title": "Kafka"}]}')
    message = await text_response(raw, tokens=(10, 5)).get_final_message()
    text, usage = text_from_message(message)
    result = assemble_single_shot(text, usage)
    assert result.text == "Pick Kafka."
    assert result.extract.new_decisions[0].title == "Kafka"
    assert result.usage == TokenUsage(10, 5)
