"""Branch Context — active-branch summary embedded in the conversation prompt."""

from archlens.core.branch_context import build_branch_context
from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    OpenQuestion,
    Option,
)
from archlens.core.domain_types import OptionStatus, QuestionStatus


def test_no_active_branch_lists_all_options_as_inactive():
    canvas = DesignCanvas(options=(
        Option(id="o1", title="A", status=OptionStatus.REJECTED, description="x" * 300),
    ))
    context = build_branch_context(canvas)
    assert context["active_option"] is None
    assert context["inactive_options"][0]["status"] == "rejected"
    assert len(context["inactive_options"][0]["key_tradeoff"]) == 120


def test_active_branch_includes_only_its_linked_items():
    canvas = DesignCanvas(
        active_option_id="o1",
        options=(
            Option(id="o1", title="WebSockets", todos="- [ ] gateway"),
            Option(id="o2", title="SSE", description="Simpler"),
        ),
        decisions=(
            Decision(id="d1", title="Sticky sessions", option_id="o1"),
            Decision(id="d2", title="Use HTTP/2", option_id="o2"),
        ),
        constraints=(
            Constraint(id="c1", description="nginx upgrade headers", decision_id="d1"),
            Constraint(id="c2", description="CDN in front", decision_id="d2"),
        ),
        open_questions=(
            OpenQuestion(id="q1", question="Backoff?", decision_id="d1"),
            OpenQuestion(id="q2", question="Done?", decision_id="d1", status=QuestionStatus.RESOLVED),
        ),
    )
    context = build_branch_context(canvas)
    active = context["active_option"]
    assert active["id"] == "o1"
    assert active["decisions"] == [{"id": "d1", "title": "Sticky sessions"}]
    assert active["constraints"] == ["nginx upgrade headers"]
    assert active["open_questions"] == ["Backoff?"]
    assert active["todos"] == "- [ ] gateway"
    assert [o["id"] for o in context["inactive_options"]] == ["o2"]
    assert context["inactive_options"][0]["key_tradeoff"] == "Simpler"
