"""Extract Parser — splits raw model output into visible prose and a DesignExtract.

Invariants:
    - parse_assistant_extract never raises; every failure is captured in parse_error
    - A failed parse always yields the canonical empty extract (never a partial one)
    - Only the FIRST <design_extract> block is consumed; matching is case-insensitive
    - strip_extract_tail hides an unclosed block entirely (no half-formed payload leaks)
    - A trailing fragment of the start tag itself ("<design_") is hidden too

Design Decisions:
    - json.loads decides success: only undecodable JSON or a non-object payload is a
      parse failure; bad list entries are dropped by the schema (ADR: merge engine only
      ever sees fully-defaulted extracts)
    - raw_extract preserved on failure for the diagnostics log
"""

import json
import re
from dataclasses import dataclass, field

from archlens.schemas.extract import DesignExtract, empty_extract

EXTRACT_TAG = "design_extract"

_BLOCK_PATTERN = re.compile(
    rf"<{EXTRACT_TAG}>\s*(.*?)\s*</{EXTRACT_TAG}>",
    re.IGNORECASE | re.DOTALL,
)
_TAIL_PATTERN = re.compile(rf"<{EXTRACT_TAG}>.*\Z", re.IGNORECASE | re.DOTALL)
_OPEN_TAG = f"<{EXTRACT_TAG}>"


@dataclass(frozen=True)
class ExtractParseResult:
    """Visible text + parsed extract for one assistant reply."""
    text: str
    extract: DesignExtract = field(default_factory=empty_extract)
    parse_error: str | None = None
    raw_extract: str = ""


def parse_assistant_extract(raw: str | None) -> ExtractParseResult:
    """Locate, remove, and decode the extract block. Pure, never raises."""
    raw = raw or ""
    match = _BLOCK_PATTERN.search(raw)
    if not match:
        return ExtractParseResult(text=raw.strip())

    visible = (raw[:match.start()] + raw[match.end():]).strip()
    interior = match.group(1) or ""
    extract, error = _decode_extract(interior)
    return ExtractParseResult(
        text=visible,
        extract=extract,
        parse_error=error,
        raw_extract=interior,
    )


def strip_extract_tail(partial: str | None) -> str:
    """Drop everything from the first start tag onward (tag may be unclosed)."""
    visible = _TAIL_PATTERN.sub("", partial or "")
    cut = visible.rfind("<")
    if cut >= 0 and _OPEN_TAG.startswith(visible[cut:].lower()):
        visible = visible[:cut]
    return visible.rstrip()


def _decode_extract(interior: str) -> tuple[DesignExtract, str | None]:
    """Decode block interior. Returns (extract, error_or_None)."""
    try:
        payload = json.loads(interior)
    except ValueError as e:
        return empty_extract(), f"Invalid extraction JSON: {e}"

    if not isinstance(payload, dict):
        return empty_extract(), (
            f"Extraction payload must be a JSON object, got {type(payload).__name__}"
        )

    return DesignExtract.model_validate(payload), None
