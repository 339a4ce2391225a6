"""Conversation routes — SSE turns, retry/regenerate preconditions, diagnostics.

Tests:
    - POST /messages streams data: lines ending in done, canvas updated afterwards
    - Empty message → 400 before any streaming
    - Retry with nothing failed → 409; unknown space → 404 (status codes, not SSE)
    - Transport failure streams error then done(error=true); retry recovers
    - extraction-failures reports count and log
"""

import json

from archlens.core.errors import AnthropicAPIError

from tests.services.mock_anthropic import extract_block, failing_response, text_response


def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


async def test_send_message_streams_and_updates_canvas(
    client, space_id, anthropic_responses,
):
    anthropic_responses.append(text_response(
        "Start with a queue.",
        extract_block(json.dumps({"new_options": [{"title": "SQS"}]})),
    ))
    resp = await client.post(
        f"/api/v1/spaces/{space_id}/messages", json={"content": "How to decouple?"},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    events = _sse_events(resp.text)
    assert events[0]["type"] == "message_started"
    assert [e["type"] for e in events[-2:]] == ["message_complete", "done"]
    assert all("design_extract" not in e["data"].get("text", "") for e in events)

    space = (await client.get(f"/api/v1/spaces/{space_id}")).json()
    assert [o["title"] for o in space["design_canvas"]["options"]] == ["SQS"]
    assert space["conversation"][-1]["content"] == "Start with a queue."
    assert len(space["usage_history"]) == 1


async def test_blank_message_is_400(client, space_id):
    resp = await client.post(f"/api/v1/spaces/{space_id}/messages", json={"content": "  "})
    assert resp.status_code == 400


async def test_message_to_unknown_space_is_404(client):
    resp = await client.post("/api/v1/spaces/missing/messages", json={"content": "Hi"})
    assert resp.status_code == 404


async def test_retry_with_nothing_failed_is_409(client, space_id):
    resp = await client.post(f"/api/v1/spaces/{space_id}/messages/retry")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "NOTHING_TO_RETRY"


async def test_regenerate_without_reply_is_409(client, space_id):
    resp = await client.post(f"/api/v1/spaces/{space_id}/messages/regenerate")
    assert resp.status_code == 409


async def test_failure_then_retry(client, space_id, anthropic_responses):
    anthropic_responses.extend([
        failing_response(AnthropicAPIError("overloaded", "overloaded"), "Par"),
        text_response("Recovered."),
    ])
    failed = await client.post(
        f"/api/v1/spaces/{space_id}/messages", json={"content": "Hello"},
    )
    events = _sse_events(failed.text)
    assert [e["type"] for e in events[-2:]] == ["error", "done"]
    assert events[-1]["data"]["error"] is True

    retried = await client.post(f"/api/v1/spaces/{space_id}/messages/retry")
    assert retried.status_code == 200
    assert _sse_events(retried.text)[-1] == {"type": "done", "data": {"error": False}}

    conversation = (await client.get(f"/api/v1/spaces/{space_id}")).json()["conversation"]
    assert [m["content"] for m in conversation] == ["Hello", "Recovered."]


async def test_extraction_failures_endpoint(client, space_id, anthropic_responses):
    anthropic_responses.append(text_response("Reply.", extract_block("[1, 2]")))
    await client.post(f"/api/v1/spaces/{space_id}/messages", json={"content": "Hello"})

    resp = await client.get(f"/api/v1/spaces/{space_id}/extraction-failures")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert "JSON object" in body["log"][0]["reason"]
