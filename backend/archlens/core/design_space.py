"""Design Space — immutable domain values for one working session and its canvas.

Invariants:
    - All values are frozen; collections are tuples — a snapshot can never change under a reader
    - IDs are opaque uuid4 hex strings, unique within a canvas, never reassigned
    - Collection order is insertion order unless an explicit reorder/move produced it
    - option_id / decision_id / active_option_id are lookup keys, never ownership

Design Decisions:
    - Frozen dataclasses + dataclasses.replace for copy-on-write (ADR: only touched
      sub-trees are rebuilt; untouched entities are shared between snapshots)
    - Pure dataclasses, no IO — serialization lives in space_snapshot.py
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from archlens.core.domain_types import (
    ConstraintSource,
    ElementType,
    MessageRole,
    OptionStatus,
    QuestionStatus,
    ReferenceType,
    SpaceStatus,
)


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Conversation -------------------------------------------------------------

@dataclass(frozen=True)
class ElementRef:
    """Typed back-reference from a message to a canvas item it created."""
    type: ElementType
    id: str


@dataclass(frozen=True)
class Message:
    id: str
    role: MessageRole
    content: str = ""
    timestamp: str = field(default_factory=now_iso)
    extracted_elements: tuple[ElementRef, ...] = ()


# --- Canvas entities ----------------------------------------------------------

@dataclass(frozen=True)
class Option:
    """A candidate approach ("branch")."""
    id: str
    title: str
    description: str = ""
    status: OptionStatus = OptionStatus.CONSIDERING
    rejection_reason: str | None = None
    finish_reason: str | None = None
    branch_score: int | None = None
    todos: str = ""
    source_messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class Decision:
    id: str
    title: str
    reasoning: str = ""
    trade_offs: str = ""
    option_id: str | None = None
    source_messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class Constraint:
    id: str
    description: str
    source: ConstraintSource = ConstraintSource.CONVERSATION
    decision_id: str | None = None
    source_messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class OpenQuestion:
    id: str
    question: str
    context: str = ""
    status: QuestionStatus = QuestionStatus.OPEN
    resolution: str | None = None
    decision_id: str | None = None


@dataclass(frozen=True)
class Reference:
    id: str
    type: ReferenceType
    label: str
    content: str = ""
    decision_id: str | None = None


@dataclass(frozen=True)
class DesignCanvas:
    """Structured design state for one space."""
    problem_statement: str = ""
    active_option_id: str | None = None
    options: tuple[Option, ...] = ()
    decisions: tuple[Decision, ...] = ()
    constraints: tuple[Constraint, ...] = ()
    open_questions: tuple[OpenQuestion, ...] = ()
    references: tuple[Reference, ...] = ()

    def find_option(self, option_id: str | None) -> Option | None:
        return next((o for o in self.options if o.id == option_id), None)

    def find_decision(self, decision_id: str | None) -> Decision | None:
        return next((d for d in self.decisions if d.id == decision_id), None)

    @property
    def active_option(self) -> Option | None:
        return self.find_option(self.active_option_id)


# --- Space-level records ------------------------------------------------------

@dataclass(frozen=True)
class Task:
    """Implementation task produced by crystallize (stored verbatim)."""
    id: str
    title: str
    description: str = ""
    context: str = ""
    files_components: tuple[str, ...] = ()
    acceptance_criteria: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    related_decisions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Outputs:
    design_doc: str | None = None
    tasks: tuple[Task, ...] = ()
    generated_at: str | None = None


@dataclass(frozen=True)
class UsageRecord:
    at: str
    model: str
    input_tokens: int
    output_tokens: int
    estimated: bool
    cost_usd: float


@dataclass(frozen=True)
class ExtractionFailure:
    at: str
    message_id: str
    reason: str
    raw_excerpt: str = ""


@dataclass(frozen=True)
class DesignSpace:
    """One working session: conversation + canvas + diagnostics."""
    id: str
    title: str = "Untitled Design"
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    status: SpaceStatus = SpaceStatus.EXPLORING
    conversation: tuple[Message, ...] = ()
    design_canvas: DesignCanvas = field(default_factory=DesignCanvas)
    outputs: Outputs = field(default_factory=Outputs)
    usage_history: tuple[UsageRecord, ...] = ()
    extraction_failures: int = 0
    extraction_failure_log: tuple[ExtractionFailure, ...] = ()

    def find_message(self, message_id: str | None) -> Message | None:
        return next((m for m in self.conversation if m.id == message_id), None)


def create_space(title: str | None = None) -> DesignSpace:
    """Fresh, empty space with a new ID."""
    stamp = now_iso()
    return DesignSpace(
        id=new_id(),
        title=title or "Untitled Design",
        created_at=stamp,
        updated_at=stamp,
    )
