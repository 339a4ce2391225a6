"""Canvas Ops — manual edits to options, decisions, and the problem statement.

Tests:
    - set/clear active honours eligibility
    - add/update/delete/reorder/move options; selecting via patch focuses the branch
    - cycle_option_status walks considering → selected → rejected → considering
    - reject/finish record reasons and re-derive active
    - promote_to_decision selects, focuses, and creates a linked decision
    - update_decision drops an option_id that does not resolve
    - reopen_decision turns a decision back into a focused considering option
    - drop_text creates the right item per canvas section
"""

import pytest

from archlens.core import canvas_ops
from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    Option,
)
from archlens.core.domain_types import (
    CanvasSection,
    Direction,
    OptionStatus,
    QuestionStatus,
    ReferenceType,
)


def _canvas() -> DesignCanvas:
    return DesignCanvas(
        active_option_id="o1",
        options=(
            Option(id="o1", title="Use WebSockets"),
            Option(id="o2", title="Use SSE"),
            Option(id="o3", title="Use polling", status=OptionStatus.REJECTED),
        ),
        decisions=(Decision(id="d1", title="Sticky sessions", option_id="o1"),),
    )


# -- Active option -------------------------------------------------------------


def test_set_active_option_requires_eligible_option():
    canvas = _canvas()
    assert canvas_ops.set_active_option(canvas, "o2").active_option_id == "o2"
    assert canvas_ops.set_active_option(canvas, "o3") is canvas
    assert canvas_ops.set_active_option(canvas, "missing") is canvas


def test_clear_active_option():
    assert canvas_ops.clear_active_option(_canvas()).active_option_id is None


def test_set_problem_statement():
    assert canvas_ops.set_problem_statement(_canvas(), "Realtime chat").problem_statement == "Realtime chat"


# -- Options -------------------------------------------------------------------


def test_add_option_defaults_and_becomes_active_on_empty_canvas():
    out = canvas_ops.add_option(DesignCanvas())
    option = out.options[0]
    assert option.title == "New option"
    assert option.status == OptionStatus.CONSIDERING
    assert option.branch_score == 5
    assert out.active_option_id == option.id


def test_add_option_keeps_existing_active():
    out = canvas_ops.add_option(_canvas(), "Long polling", source_message_id="m1")
    assert out.active_option_id == "o1"
    assert out.options[-1].source_messages == ("m1",)


def test_update_option_select_focuses_branch():
    out = canvas_ops.update_option(_canvas(), "o2", {"status": OptionStatus.SELECTED})
    assert out.find_option("o2").status == OptionStatus.SELECTED
    assert out.active_option_id == "o2"


def test_update_option_rejecting_active_rederives():
    out = canvas_ops.update_option(_canvas(), "o1", {"status": OptionStatus.REJECTED})
    assert out.active_option_id == "o2"


def test_update_option_never_changes_id():
    out = canvas_ops.update_option(_canvas(), "o1", {"id": "x", "title": "Renamed"})
    assert out.find_option("o1").title == "Renamed"
    assert out.find_option("x") is None


def test_update_unknown_option_is_noop():
    canvas = _canvas()
    assert canvas_ops.update_option(canvas, "nope", {"title": "x"}) is canvas


def test_delete_option_keeps_decision_and_clears_link():
    out = canvas_ops.delete_option(_canvas(), "o1")
    assert out.find_option("o1") is None
    assert out.decisions[0].option_id is None
    assert out.active_option_id == "o2"


def test_reorder_and_move_options():
    reordered = canvas_ops.reorder_option(_canvas(), "o2", Direction.UP)
    assert [o.id for o in reordered.options] == ["o2", "o1", "o3"]
    moved = canvas_ops.move_option(_canvas(), "o3", "o1")
    assert [o.id for o in moved.options] == ["o3", "o1", "o2"]


@pytest.mark.parametrize("start, expected", [
    (OptionStatus.CONSIDERING, OptionStatus.SELECTED),
    (OptionStatus.SELECTED, OptionStatus.REJECTED),
    (OptionStatus.REJECTED, OptionStatus.CONSIDERING),
    (OptionStatus.FINISHED, OptionStatus.CONSIDERING),
])
def test_next_status_cycle(start, expected):
    assert canvas_ops.next_status(start) == expected


def test_cycle_status_to_selected_focuses_branch():
    out = canvas_ops.cycle_option_status(_canvas(), "o2")
    assert out.find_option("o2").status == OptionStatus.SELECTED
    assert out.active_option_id == "o2"


def test_reject_option_records_reason_and_rederives_active():
    out = canvas_ops.reject_option(_canvas(), "o1", "  Too much infra  ")
    option = out.find_option("o1")
    assert option.status == OptionStatus.REJECTED
    assert option.rejection_reason == "Too much infra"
    assert out.active_option_id == "o2"


def test_finish_option_records_reason():
    out = canvas_ops.finish_option(_canvas(), "o2", "Prototype shipped")
    assert out.find_option("o2").status == OptionStatus.FINISHED
    assert out.find_option("o2").finish_reason == "Prototype shipped"
    assert out.active_option_id == "o1"


def test_set_option_todos_replaces_checklist():
    out = canvas_ops.set_option_todos(_canvas(), "o1", "- [ ] load test\n")
    assert out.find_option("o1").todos == "- [ ] load test"


def test_promote_to_decision():
    out = canvas_ops.promote_to_decision(_canvas(), "o2")
    assert out.find_option("o2").status == OptionStatus.SELECTED
    assert out.active_option_id == "o2"
    decision = out.decisions[-1]
    assert decision.title == "Use SSE"
    assert decision.option_id == "o2"


# -- Decisions -----------------------------------------------------------------


def test_add_decision_attaches_to_active_option():
    out = canvas_ops.add_decision(_canvas(), "Use Redis for fan-out")
    assert out.decisions[-1].option_id == "o1"


def test_add_decision_without_active_is_unlinked():
    out = canvas_ops.add_decision(DesignCanvas())
    assert out.decisions[0].title == "New decision"
    assert out.decisions[0].option_id is None


def test_update_decision_drops_unresolved_option_id():
    out = canvas_ops.update_decision(_canvas(), "d1", {"option_id": "ghost", "title": "New"})
    assert out.decisions[0].option_id == "o1"
    assert out.decisions[0].title == "New"


def test_update_decision_relinks_to_existing_option():
    out = canvas_ops.update_decision(_canvas(), "d1", {"option_id": "o2"})
    assert out.decisions[0].option_id == "o2"


def test_append_decision_text():
    canvas = DesignCanvas(decisions=(Decision(id="d1", title="x", reasoning="r1"),))
    out = canvas_ops.append_decision_text(canvas, "d1", reasoning="r2", trade_offs="t")
    assert out.decisions[0].reasoning == "r1\nr2"
    assert out.decisions[0].trade_offs == "t"


def test_delete_decision_unlinks_constraints():
    canvas = DesignCanvas(
        decisions=(Decision(id="d1", title="x"),),
        constraints=(Constraint(id="c1", description="y", decision_id="d1"),),
    )
    out = canvas_ops.delete_decision(canvas, "d1")
    assert out.decisions == ()
    assert out.constraints[0].decision_id is None


def test_reopen_decision_creates_focused_option():
    canvas = DesignCanvas(
        decisions=(Decision(id="d1", title="Use Kafka", reasoning="Durable", source_messages=("m1",)),),
        constraints=(Constraint(id="c1", description="y", decision_id="d1"),),
    )
    out = canvas_ops.reopen_decision(canvas, "d1")
    assert out.decisions == ()
    option = out.options[-1]
    assert option.title == "Use Kafka"
    assert option.description == "Durable"
    assert option.status == OptionStatus.CONSIDERING
    assert option.source_messages == ("m1",)
    assert out.active_option_id == option.id
    assert out.constraints[0].decision_id is None


def test_reorder_and_move_decisions():
    canvas = DesignCanvas(decisions=(Decision(id="a", title="A"), Decision(id="b", title="B")))
    assert [d.id for d in canvas_ops.reorder_decision(canvas, "a", Direction.DOWN).decisions] == ["b", "a"]
    assert [d.id for d in canvas_ops.move_decision(canvas, "b", "a").decisions] == ["b", "a"]


# -- Drop text -----------------------------------------------------------------


def test_drop_on_problem_statement_appends_line():
    canvas = DesignCanvas(problem_statement="Chat app")
    out = canvas_ops.drop_text(canvas, CanvasSection.PROBLEM_STATEMENT, "10k concurrent users")
    assert out.problem_statement == "Chat app\n10k concurrent users"


def test_drop_creates_item_with_compact_title():
    text = "Use a CDN for assets\nCloudFront in front of S3"
    options = canvas_ops.drop_text(DesignCanvas(), CanvasSection.OPTIONS, text, "m1")
    assert options.options[0].title == "Use a CDN for assets"
    assert options.options[0].description == text
    assert options.options[0].source_messages == ("m1",)

    decisions = canvas_ops.drop_text(DesignCanvas(), CanvasSection.DECISIONS, text)
    assert decisions.decisions[0].title == "Use a CDN for assets"

    questions = canvas_ops.drop_text(DesignCanvas(), CanvasSection.OPEN_QUESTIONS, text)
    assert questions.open_questions[0].question == "Use a CDN for assets"
    assert questions.open_questions[0].status == QuestionStatus.OPEN

    references = canvas_ops.drop_text(DesignCanvas(), CanvasSection.REFERENCES, text)
    assert references.references[0].type == ReferenceType.PASTE
    assert references.references[0].content == text


def test_drop_constraint_keeps_full_text():
    out = canvas_ops.drop_text(DesignCanvas(), CanvasSection.CONSTRAINTS, "Budget: $500/mo")
    assert out.constraints[0].description == "Budget: $500/mo"


def test_drop_blank_text_is_noop():
    canvas = DesignCanvas()
    assert canvas_ops.drop_text(canvas, CanvasSection.OPTIONS, "   ") is canvas
