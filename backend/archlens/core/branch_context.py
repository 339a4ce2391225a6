"""Branch Context — compact summary of the focused branch for the conversation prompt.

Invariants:
    - Pure: derived from a canvas snapshot only
    - Active branch lists only its own decisions and the items linked to them
    - Resolved questions are omitted from the active branch summary
    - Inactive branches are summarized by title, status, and a 120-char key trade-off
"""

from archlens.core.design_space import DesignCanvas, Option
from archlens.core.domain_types import QuestionStatus

KEY_TRADEOFF_CHARS = 120


def _inactive_summary(option: Option) -> dict:
    return {
        "id": option.id,
        "title": option.title,
        "status": option.status.value,
        "key_tradeoff": option.description[:KEY_TRADEOFF_CHARS],
    }


def build_branch_context(canvas: DesignCanvas) -> dict:
    active = canvas.active_option
    if active is None:
        return {
            "active_option": None,
            "inactive_options": [_inactive_summary(o) for o in canvas.options],
        }

    decisions = [d for d in canvas.decisions if d.option_id == active.id]
    decision_ids = {d.id for d in decisions}
    return {
        "active_option": {
            "id": active.id,
            "title": active.title,
            "decisions": [{"id": d.id, "title": d.title} for d in decisions],
            "constraints": [
                c.description for c in canvas.constraints if c.decision_id in decision_ids
            ],
            "open_questions": [
                q.question for q in canvas.open_questions
                if q.status == QuestionStatus.OPEN and q.decision_id in decision_ids
            ],
            "todos": active.todos,
        },
        "inactive_options": [
            _inactive_summary(o) for o in canvas.options if o.id != active.id
        ],
    }
