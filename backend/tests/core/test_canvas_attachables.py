"""Canvas Attachables — constraints, open questions, references.

Tests:
    - New items attach to the implicit decision target
    - update_item drops a decision_id that does not resolve
    - link/unlink re-validate both ends; missing end is a no-op
    - delete/reorder/move operate on the right collection only
    - toggle_question_status flips open ↔ resolved
"""

from archlens.core.canvas_attachables import (
    add_constraint,
    add_question,
    add_reference,
    delete_item,
    link_to_decision,
    move_item,
    reorder_item,
    toggle_question_status,
    unlink_from_decision,
    update_item,
)
from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    OpenQuestion,
    Reference,
)
from archlens.core.domain_types import (
    AttachableKind,
    ConstraintSource,
    Direction,
    QuestionStatus,
    ReferenceType,
)


def _canvas() -> DesignCanvas:
    return DesignCanvas(
        active_option_id="o1",
        decisions=(
            Decision(id="d1", title="A", option_id="o1"),
            Decision(id="d2", title="B"),
        ),
        constraints=(
            Constraint(id="c1", description="One"),
            Constraint(id="c2", description="Two", decision_id="d2"),
        ),
        open_questions=(OpenQuestion(id="q1", question="Why?"),),
        references=(Reference(id="r1", type=ReferenceType.URL, label="RFC 6455"),),
    )


def test_new_items_attach_to_active_branch_decision():
    canvas = add_constraint(_canvas(), "Runs on k8s", ConstraintSource.CODE, "m1")
    canvas = add_question(canvas, "Which region?")
    canvas = add_reference(canvas, ReferenceType.CODE_SNIPPET, "handler.py", "def f(): ...")
    assert canvas.constraints[-1].decision_id == "d1"
    assert canvas.constraints[-1].source == ConstraintSource.CODE
    assert canvas.constraints[-1].source_messages == ("m1",)
    assert canvas.open_questions[-1].decision_id == "d1"
    assert canvas.open_questions[-1].status == QuestionStatus.OPEN
    assert canvas.references[-1].decision_id == "d1"


def test_references_are_never_deduplicated():
    canvas = add_reference(_canvas(), ReferenceType.URL, "RFC 6455")
    assert [r.label for r in canvas.references] == ["RFC 6455", "RFC 6455"]


def test_update_item_drops_unresolved_decision_id():
    out = update_item(_canvas(), AttachableKind.CONSTRAINT, "c2", {
        "decision_id": "ghost", "description": "Two!",
    })
    assert out.constraints[1].decision_id == "d2"
    assert out.constraints[1].description == "Two!"


def test_update_item_never_changes_id():
    out = update_item(_canvas(), AttachableKind.QUESTION, "q1", {"id": "x", "resolution": "Because"})
    assert out.open_questions[0].id == "q1"
    assert out.open_questions[0].resolution == "Because"


def test_update_unknown_item_is_noop():
    canvas = _canvas()
    assert update_item(canvas, AttachableKind.REFERENCE, "nope", {"label": "x"}) is canvas


def test_link_and_unlink():
    linked = link_to_decision(_canvas(), AttachableKind.CONSTRAINT, "c1", "d1")
    assert linked.constraints[0].decision_id == "d1"
    unlinked = unlink_from_decision(linked, AttachableKind.CONSTRAINT, "c1")
    assert unlinked.constraints[0].decision_id is None


def test_link_to_missing_decision_or_item_is_noop():
    canvas = _canvas()
    assert link_to_decision(canvas, AttachableKind.QUESTION, "q1", "deleted") is canvas
    assert link_to_decision(canvas, AttachableKind.QUESTION, "gone", "d1") is canvas
    assert unlink_from_decision(canvas, AttachableKind.REFERENCE, "gone") is canvas


def test_delete_reorder_move_touch_only_their_collection():
    canvas = _canvas()
    deleted = delete_item(canvas, AttachableKind.CONSTRAINT, "c1")
    assert [c.id for c in deleted.constraints] == ["c2"]
    assert deleted.open_questions == canvas.open_questions

    reordered = reorder_item(canvas, AttachableKind.CONSTRAINT, "c2", Direction.UP)
    assert [c.id for c in reordered.constraints] == ["c2", "c1"]

    moved = move_item(canvas, AttachableKind.CONSTRAINT, "c1", "c2")
    assert [c.id for c in moved.constraints] == ["c2", "c1"]


def test_toggle_question_status():
    resolved = toggle_question_status(_canvas(), "q1")
    assert resolved.open_questions[0].status == QuestionStatus.RESOLVED
    reopened = toggle_question_status(resolved, "q1")
    assert reopened.open_questions[0].status == QuestionStatus.OPEN
