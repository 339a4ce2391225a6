"""Token Estimates — rough token/cost accounting when the transport reports no usage.

Invariants:
    - estimate_tokens("") == 0; any non-empty text is at least 1 token
    - Unknown models fall back to the default pricing row
    - Pure functions only

Design Decisions:
    - ~4 chars per token heuristic: good enough for a usage footer, not for billing
      (ADR: real counts from the API always win; estimates are flagged estimated=True)
"""

import json
import math

from archlens.core.design_space import DesignCanvas, Message
from archlens.core.space_snapshot import canvas_to_dict

CHARS_PER_TOKEN = 4

# USD per million tokens (input, output)
_PRICING_PER_MILLION: dict[str, tuple[float, float]] = {
    "claude-sonnet-4-6": (3.0, 15.0),
    "claude-opus-4-6": (15.0, 75.0),
    "claude-3-7-sonnet-latest": (3.0, 15.0),
    "claude-3-5-sonnet-latest": (3.0, 15.0),
}
_DEFAULT_PRICING = _PRICING_PER_MILLION["claude-sonnet-4-6"]


def estimate_tokens(text: str | None) -> int:
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


def estimate_context_tokens(
    conversation: tuple[Message, ...] | list[Message], canvas: DesignCanvas,
) -> int:
    """Prompt-side estimate: conversation transcript plus the canvas JSON."""
    transcript = "\n".join(f"{m.role.value}: {m.content}" for m in conversation)
    canvas_text = json.dumps(canvas_to_dict(canvas), ensure_ascii=False)
    return estimate_tokens(transcript) + estimate_tokens(canvas_text)


def estimate_cost_usd(model: str, input_tokens: int, output_tokens: int) -> float:
    price_in, price_out = _PRICING_PER_MILLION.get(model, _DEFAULT_PRICING)
    return (input_tokens / 1_000_000) * price_in + (output_tokens / 1_000_000) * price_out
