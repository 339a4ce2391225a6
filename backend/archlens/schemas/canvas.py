"""Canvas Schemas — request bodies for manual canvas edits.

Invariants:
    - Patch models only expose editable fields; id and source_messages are never patchable
    - to_patch() returns only the fields the client actually sent (exclude_unset)
    - null is accepted only where it means "clear": links, reasons, resolution, branch_score
    - Text fields are length-bounded at the API boundary

Design Decisions:
    - One patch model per entity over a generic dict body: FastAPI validates enums and
      types before anything reaches core/
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from archlens.core.domain_types import (
    CanvasSection,
    ConstraintSource,
    Direction,
    OptionStatus,
    QuestionStatus,
    ReferenceType,
)

_TITLE_MAX = 500
_TEXT_MAX = 20_000

_CLEARABLE = frozenset({
    "option_id", "decision_id", "rejection_reason", "finish_reason", "resolution", "branch_score",
})


class _Patch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @field_validator("*", mode="before")
    @classmethod
    def null_only_where_clearable(cls, v, info: ValidationInfo):
        if v is None and info.field_name not in _CLEARABLE:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def to_patch(self) -> dict:
        return self.model_dump(exclude_unset=True)


# --- Options / decisions ------------------------------------------------------

class OptionCreate(BaseModel):
    title: str = Field("New option", min_length=1, max_length=_TITLE_MAX)
    description: str = Field("", max_length=_TEXT_MAX)


class OptionPatch(_Patch):
    title: str | None = Field(None, min_length=1, max_length=_TITLE_MAX)
    description: str | None = Field(None, max_length=_TEXT_MAX)
    status: OptionStatus | None = None
    rejection_reason: str | None = Field(None, max_length=_TEXT_MAX)
    finish_reason: str | None = Field(None, max_length=_TEXT_MAX)
    branch_score: int | None = Field(None, ge=0, le=10)


class DecisionCreate(BaseModel):
    title: str = Field("New decision", min_length=1, max_length=_TITLE_MAX)
    reasoning: str = Field("", max_length=_TEXT_MAX)
    trade_offs: str = Field("", max_length=_TEXT_MAX)


class DecisionPatch(_Patch):
    title: str | None = Field(None, min_length=1, max_length=_TITLE_MAX)
    reasoning: str | None = Field(None, max_length=_TEXT_MAX)
    trade_offs: str | None = Field(None, max_length=_TEXT_MAX)
    option_id: str | None = None


class DecisionAppendBody(BaseModel):
    reasoning: str | None = Field(None, max_length=_TEXT_MAX)
    trade_offs: str | None = Field(None, max_length=_TEXT_MAX)


class ReasonBody(BaseModel):
    reason: str | None = Field(None, max_length=_TEXT_MAX)


class TodosBody(BaseModel):
    todos: str = Field("", max_length=_TEXT_MAX)


# --- Attachables --------------------------------------------------------------

class ConstraintCreate(BaseModel):
    description: str = Field("New constraint", min_length=1, max_length=_TEXT_MAX)
    source: ConstraintSource = ConstraintSource.CONVERSATION


class ConstraintPatch(_Patch):
    description: str | None = Field(None, min_length=1, max_length=_TEXT_MAX)
    source: ConstraintSource | None = None
    decision_id: str | None = None


class QuestionCreate(BaseModel):
    question: str = Field("New question", min_length=1, max_length=_TEXT_MAX)
    context: str = Field("", max_length=_TEXT_MAX)


class QuestionPatch(_Patch):
    question: str | None = Field(None, min_length=1, max_length=_TEXT_MAX)
    context: str | None = Field(None, max_length=_TEXT_MAX)
    status: QuestionStatus | None = None
    resolution: str | None = Field(None, max_length=_TEXT_MAX)
    decision_id: str | None = None


class ReferenceCreate(BaseModel):
    type: ReferenceType = ReferenceType.PASTE
    label: str = Field(min_length=1, max_length=_TITLE_MAX)
    content: str = Field("", max_length=_TEXT_MAX * 5)


class ReferencePatch(_Patch):
    type: ReferenceType | None = None
    label: str | None = Field(None, min_length=1, max_length=_TITLE_MAX)
    content: str | None = Field(None, max_length=_TEXT_MAX * 5)
    decision_id: str | None = None


class LinkBody(BaseModel):
    decision_id: str = Field(min_length=1)


# --- Ordering / canvas-level --------------------------------------------------

class ReorderBody(BaseModel):
    direction: Direction


class MoveBody(BaseModel):
    target_id: str = Field(min_length=1)


class ProblemStatementBody(BaseModel):
    problem_statement: str = Field("", max_length=_TEXT_MAX)


class ActiveOptionBody(BaseModel):
    option_id: str | None = None


class DropTextBody(BaseModel):
    section: CanvasSection
    text: str = Field(min_length=1, max_length=_TEXT_MAX * 5)
    source_message_id: str | None = None
