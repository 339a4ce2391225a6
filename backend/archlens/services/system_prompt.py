"""Conversation System Prompt — architect persona, canvas state, and extract contract.

Invariants:
    - build_conversation_prompt(canvas) is deterministic for a given canvas snapshot
    - The prompt always embeds the current canvas JSON and the branch context
    - The extract contract names every field DesignExtract accepts, with its shape

Design Decisions:
    - Canvas + branch context as JSON: the model echoes option/decision IDs back in
      update_* fields, so it must see them verbatim
    - XML-tagged sections for reliable parsing by the model
    - Extract template lives next to the tag name (extract_parser.EXTRACT_TAG) so the
      prompt and the parser can never disagree about the delimiter
"""

import json

from archlens.core.branch_context import build_branch_context
from archlens.core.design_space import DesignCanvas
from archlens.core.extract_parser import EXTRACT_TAG
from archlens.core.space_snapshot import canvas_to_dict

_IDENTITY = """<identity>
You are ArchLens, an expert software architect and design thinking partner.
</identity>"""

_BEHAVIOR = """<behavior>
- Be direct, opinionated, and specific.
- Explain trade-offs honestly.
- Ask clarifying questions when the requirement is underspecified.
- Keep responses practical and concise.
- Prioritize the ACTIVE branch when giving implementation guidance.
- Keep alternative branches short unless the user explicitly asks to reopen them.
- Model architecture as a deep DAG of decisions; branches are labels that can diverge at any decision.
</behavior>"""

_EXTRACT_TEMPLATE = {
    "problem_statement_update": None,
    "new_options": [{"title": "...", "description": "..."}],
    "update_options": [{"id": "existing option id", "description": "text to append"}],
    "option_status_changes": [
        {"option_title": "...", "new_status": "selected|rejected|considering|finished", "reason": "..."},
    ],
    "new_decisions": [{"title": "...", "reasoning": "...", "trade_offs": "..."}],
    "update_decisions": [{"id": "existing decision id", "reasoning": "...", "trade_offs": "..."}],
    "new_constraints": [{"description": "...", "source": "conversation|code|external"}],
    "update_constraints": [{"id": "existing constraint id", "description": "..."}],
    "new_open_questions": [{"question": "...", "context": "..."}],
    "resolved_questions": [{"question": "...", "resolution": "..."}],
    "finish_branches": [{"option_title": "...", "reason": "..."}],
    "delete_decisions": [{"id": "..."}],
    "delete_constraints": [{"id": "..."}],
    "delete_open_questions": [{"id": "..."}],
    "set_branch_todos": [{"option_id": "...", "todos": "- [ ] markdown checklist"}],
}

_EXTRACT_RULES = """- Only add net-new items from this turn; leave lists empty when nothing changed.
- Refer to existing options by title in option_status_changes and finish_branches.
- Use IDs from the canvas JSON for update_*, delete_* and set_branch_todos.
- update_* text is appended to what is already there; do not repeat it.
- set_branch_todos replaces the whole checklist for that branch."""


def _json_block(value: object) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def build_extract_contract() -> str:
    return (
        "<extract_contract>\n"
        f"After every response append a JSON block wrapped in <{EXTRACT_TAG}> tags.\n"
        "Use this format exactly:\n"
        f"<{EXTRACT_TAG}>\n{_json_block(_EXTRACT_TEMPLATE)}\n</{EXTRACT_TAG}>\n"
        f"{_EXTRACT_RULES}\n"
        "</extract_contract>"
    )


def build_conversation_prompt(canvas: DesignCanvas) -> str:
    """Full system prompt for one conversation turn."""
    sections = [
        _IDENTITY,
        _BEHAVIOR,
        f"<design_canvas>\n{_json_block(canvas_to_dict(canvas))}\n</design_canvas>",
        f"<branch_context>\n{_json_block(build_branch_context(canvas))}\n</branch_context>",
        build_extract_contract(),
    ]
    return "\n\n".join(sections)
