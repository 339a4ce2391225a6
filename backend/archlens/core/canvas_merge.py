"""Canvas Merge — applies one turn's DesignExtract to a canvas snapshot.

Invariants:
    - merge_extract is pure: (canvas, message_id, extract) → MergeOutcome; input never mutated
    - Step order is fixed — later steps see items created by earlier steps in the same call
    - Near-duplicate titles/texts are skipped, first occurrence wins (including within one extract)
    - Updates by ID append (newline-joined) unless the extract explicitly asks to replace
    - Unknown IDs and unmatched titles are silently ignored — never a partial failure
    - Result always satisfies canvas_invariants (enforced as the final step)

Design Decisions:
    - Mutable _CanvasDraft inside the call, frozen DesignCanvas at the boundary
      (ADR: readable step functions without leaking mutation to callers)
    - Options are matched by TITLE for status/finish changes because the model refers to
      branches by name; by ID for description/todo updates because it echoes IDs it was given
    - Matcher injected (TextMatcher Protocol) — thresholds/algorithm swappable
"""

import logging
from dataclasses import dataclass, field, replace

from archlens.core.canvas_invariants import (
    append_text,
    attachment_target,
    derive_active_option_id,
    enforce_canvas_invariants,
    remove_decision,
)
from archlens.core.design_space import (
    Constraint,
    Decision,
    DesignCanvas,
    ElementRef,
    OpenQuestion,
    Option,
    new_id,
)
from archlens.core.domain_types import (
    DEFAULT_BRANCH_SCORE,
    ElementType,
    OptionStatus,
    QuestionStatus,
)
from archlens.core.fuzzy_match import DEFAULT_MATCHER, TextMatcher
from archlens.schemas.extract import DesignExtract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeOutcome:
    canvas: DesignCanvas
    created: tuple[ElementRef, ...] = ()


@dataclass
class _CanvasDraft:
    """Working copy for one merge. Lists of frozen items, replaced by index."""
    problem_statement: str
    active_option_id: str | None
    options: list[Option]
    decisions: list[Decision]
    constraints: list[Constraint]
    open_questions: list[OpenQuestion]
    references: list
    created: list[ElementRef] = field(default_factory=list)

    @classmethod
    def from_canvas(cls, canvas: DesignCanvas) -> "_CanvasDraft":
        return cls(
            problem_statement=canvas.problem_statement,
            active_option_id=canvas.active_option_id,
            options=list(canvas.options),
            decisions=list(canvas.decisions),
            constraints=list(canvas.constraints),
            open_questions=list(canvas.open_questions),
            references=list(canvas.references),
        )

    def freeze(self) -> DesignCanvas:
        return DesignCanvas(
            problem_statement=self.problem_statement,
            active_option_id=self.active_option_id,
            options=tuple(self.options),
            decisions=tuple(self.decisions),
            constraints=tuple(self.constraints),
            open_questions=tuple(self.open_questions),
            references=tuple(self.references),
        )


def merge_extract(
    canvas: DesignCanvas,
    source_message_id: str,
    extract: DesignExtract,
    matcher: TextMatcher = DEFAULT_MATCHER,
) -> MergeOutcome:
    """Reconcile a parsed extract against the canvas. Pure, never raises on content."""
    draft = _CanvasDraft.from_canvas(enforce_canvas_invariants(canvas))

    _apply_problem_statement(draft, extract)
    _apply_new_options(draft, extract, source_message_id, matcher)
    _apply_option_updates(draft, extract)
    _apply_status_changes(draft, extract, source_message_id, matcher)
    _apply_new_decisions(draft, extract, source_message_id, matcher)
    _apply_decision_updates(draft, extract)
    _apply_new_constraints(draft, extract, source_message_id, matcher)
    _apply_constraint_updates(draft, extract)
    _apply_new_questions(draft, extract, matcher)
    _apply_resolved_questions(draft, extract, matcher)
    _apply_finish_branches(draft, extract, source_message_id, matcher)
    _apply_branch_todos(draft, extract)

    merged = _apply_deletions(draft.freeze(), extract)
    merged = enforce_canvas_invariants(merged)
    created = tuple(
        ref for ref in draft.created if _still_exists(merged, ref)
    )
    logger.debug(
        "Merged extract: %d new element(s)", len(created),
        extra={"message_id": source_message_id},
    )
    return MergeOutcome(canvas=merged, created=created)


# --- Step 1: problem statement ------------------------------------------------

def _apply_problem_statement(draft: _CanvasDraft, extract: DesignExtract) -> None:
    update = (extract.problem_statement_update or "").strip()
    if update:
        draft.problem_statement = update


# --- Steps 2-4: options -------------------------------------------------------

def _apply_new_options(draft, extract, message_id, matcher) -> None:
    for proposed in extract.new_options:
        title = proposed.title.strip()
        if not title:
            continue
        if any(matcher.is_near_duplicate(o.title, title) for o in draft.options):
            continue
        option = Option(
            id=new_id(),
            title=title,
            description=proposed.description.strip(),
            status=OptionStatus.CONSIDERING,
            branch_score=DEFAULT_BRANCH_SCORE,
            source_messages=(message_id,),
        )
        draft.options.append(option)
        if not draft.active_option_id:
            draft.active_option_id = option.id
        draft.created.append(ElementRef(ElementType.OPTION, option.id))


def _apply_option_updates(draft, extract) -> None:
    for update in extract.update_options:
        index = _index_by_id(draft.options, update.id)
        if index is None:
            continue
        option = draft.options[index]
        draft.options[index] = replace(
            option, description=append_text(option.description, update.description),
        )


def _apply_status_changes(draft, extract, message_id, matcher) -> None:
    for change in extract.option_status_changes:
        index = _index_by_title(draft.options, change.option_title, matcher)
        if index is None:
            continue
        option = draft.options[index]
        patch: dict = {
            "status": change.new_status,
            "source_messages": _with_source(option.source_messages, message_id),
        }
        if change.reason and change.new_status == OptionStatus.REJECTED:
            patch["rejection_reason"] = change.reason
        if change.reason and change.new_status == OptionStatus.FINISHED:
            patch["finish_reason"] = change.reason
        draft.options[index] = replace(option, **patch)

        if change.new_status == OptionStatus.SELECTED:
            draft.active_option_id = option.id
        elif draft.active_option_id == option.id:
            draft.active_option_id = derive_active_option_id(
                draft.active_option_id, tuple(draft.options),
            )


# --- Steps 5-6: decisions -----------------------------------------------------

def _apply_new_decisions(draft, extract, message_id, matcher) -> None:
    for proposed in extract.new_decisions:
        title = proposed.title.strip()
        if not title:
            continue
        if any(matcher.is_near_duplicate(d.title, title) for d in draft.decisions):
            continue
        decision = Decision(
            id=new_id(),
            title=title,
            reasoning=proposed.reasoning.strip(),
            trade_offs=proposed.trade_offs.strip(),
            option_id=draft.active_option_id,
            source_messages=(message_id,),
        )
        draft.decisions.append(decision)
        draft.created.append(ElementRef(ElementType.DECISION, decision.id))


def _apply_decision_updates(draft, extract) -> None:
    for update in extract.update_decisions:
        index = _index_by_id(draft.decisions, update.id)
        if index is None:
            continue
        decision = draft.decisions[index]
        draft.decisions[index] = replace(
            decision,
            reasoning=_merge_field(decision.reasoning, update.reasoning, update.replace),
            trade_offs=_merge_field(decision.trade_offs, update.trade_offs, update.replace),
        )


def _merge_field(existing: str, incoming: str | None, replace_field: bool) -> str:
    if replace_field and incoming is not None and incoming.strip():
        return incoming.strip()
    return append_text(existing, incoming)


# --- Steps 7-8: attachables ---------------------------------------------------

def _apply_new_constraints(draft, extract, message_id, matcher) -> None:
    for proposed in extract.new_constraints:
        description = proposed.description.strip()
        if not description:
            continue
        if any(
            matcher.is_near_duplicate(c.description, description)
            for c in draft.constraints
        ):
            continue
        constraint = Constraint(
            id=new_id(),
            description=description,
            source=proposed.source,
            decision_id=_draft_attachment_target(draft),
            source_messages=(message_id,),
        )
        draft.constraints.append(constraint)
        draft.created.append(ElementRef(ElementType.CONSTRAINT, constraint.id))


def _apply_constraint_updates(draft, extract) -> None:
    for update in extract.update_constraints:
        index = _index_by_id(draft.constraints, update.id)
        text = update.description.strip()
        if index is None or not text:
            continue
        draft.constraints[index] = replace(draft.constraints[index], description=text)


def _apply_new_questions(draft, extract, matcher) -> None:
    for proposed in extract.new_open_questions:
        text = proposed.question.strip()
        if not text:
            continue
        if any(matcher.is_near_duplicate(q.question, text) for q in draft.open_questions):
            continue
        question = OpenQuestion(
            id=new_id(),
            question=text,
            context=proposed.context.strip(),
            status=QuestionStatus.OPEN,
            decision_id=_draft_attachment_target(draft),
        )
        draft.open_questions.append(question)
        draft.created.append(ElementRef(ElementType.OPEN_QUESTION, question.id))


def _apply_resolved_questions(draft, extract, matcher) -> None:
    for resolved in extract.resolved_questions:
        index = next(
            (
                i for i, q in enumerate(draft.open_questions)
                if matcher.is_near_duplicate(q.question, resolved.question)
            ),
            None,
        )
        if index is None:
            continue
        question = draft.open_questions[index]
        draft.open_questions[index] = replace(
            question,
            status=QuestionStatus.RESOLVED,
            resolution=(resolved.resolution or "").strip() or question.resolution,
        )


def _draft_attachment_target(draft: _CanvasDraft) -> str | None:
    return attachment_target(DesignCanvas(
        active_option_id=draft.active_option_id,
        decisions=tuple(draft.decisions),
    ))


# --- Branch lifecycle + deletions ---------------------------------------------

def _apply_finish_branches(draft, extract, message_id, matcher) -> None:
    for finish in extract.finish_branches:
        index = _index_by_title(draft.options, finish.option_title, matcher)
        if index is None:
            continue
        option = draft.options[index]
        draft.options[index] = replace(
            option,
            status=OptionStatus.FINISHED,
            finish_reason=(finish.reason or "").strip() or option.finish_reason,
            source_messages=_with_source(option.source_messages, message_id),
        )


def _apply_branch_todos(draft, extract) -> None:
    for todos in extract.set_branch_todos:
        index = _index_by_id(draft.options, todos.option_id)
        if index is not None:
            draft.options[index] = replace(draft.options[index], todos=todos.todos.strip())


def _apply_deletions(canvas: DesignCanvas, extract: DesignExtract) -> DesignCanvas:
    for target in extract.delete_decisions:
        canvas = remove_decision(canvas, target.id)
    constraint_ids = {t.id for t in extract.delete_constraints}
    question_ids = {t.id for t in extract.delete_open_questions}
    if constraint_ids or question_ids:
        canvas = replace(
            canvas,
            constraints=tuple(c for c in canvas.constraints if c.id not in constraint_ids),
            open_questions=tuple(q for q in canvas.open_questions if q.id not in question_ids),
        )
    return canvas


# --- Lookups ------------------------------------------------------------------

def _index_by_id(items: list, item_id: str) -> int | None:
    if not item_id:
        return None
    return next((i for i, item in enumerate(items) if item.id == item_id), None)


def _index_by_title(options: list[Option], title: str, matcher: TextMatcher) -> int | None:
    return next(
        (i for i, o in enumerate(options) if matcher.is_near_duplicate(o.title, title)),
        None,
    )


def _with_source(sources: tuple[str, ...], message_id: str) -> tuple[str, ...]:
    return sources if message_id in sources else (*sources, message_id)


def _still_exists(canvas: DesignCanvas, ref: ElementRef) -> bool:
    collection = {
        ElementType.OPTION: canvas.options,
        ElementType.DECISION: canvas.decisions,
        ElementType.CONSTRAINT: canvas.constraints,
        ElementType.OPEN_QUESTION: canvas.open_questions,
    }[ref.type]
    return any(item.id == ref.id for item in collection)
