"""Extract Schema — Pydantic model for the <design_extract> payload the model appends.

Invariants:
    - Every list field defaults to [] and every optional scalar to None (canonical empty extract)
    - Unknown/extra keys are ignored at every level
    - null where a string or list is expected is coerced to the empty value, never rejected
    - A list entry that fails its item model is dropped (logged at WARNING); the rest of
      the turn still applies
    - A non-list value for a list field, or a non-string problem_statement_update, is
      treated as absent

Design Decisions:
    - Pydantic at the wire boundary, frozen dataclasses in core/ (ADR: schemas are contracts)
    - Unknown constraint sources fall back to "conversation" — a wrong label is not worth
      dropping the whole turn over
"""

import logging
from typing import Annotated, Any, get_args

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from archlens.core.domain_types import ConstraintSource, OptionStatus

logger = logging.getLogger(__name__)


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


Text = Annotated[str, BeforeValidator(_none_to_empty)]


class _ExtractItem(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class NewOption(_ExtractItem):
    title: Text = ""
    description: Text = ""


class OptionUpdate(_ExtractItem):
    id: Text = ""
    description: Text = ""


class OptionStatusChange(_ExtractItem):
    option_title: Text = ""
    new_status: OptionStatus
    reason: str | None = None


class NewDecision(_ExtractItem):
    title: Text = ""
    reasoning: Text = ""
    trade_offs: Text = ""


class DecisionUpdate(_ExtractItem):
    id: Text = ""
    reasoning: str | None = None
    trade_offs: str | None = None
    replace: bool = False


class NewConstraint(_ExtractItem):
    description: Text = ""
    source: ConstraintSource = ConstraintSource.CONVERSATION

    @field_validator("source", mode="before")
    @classmethod
    def default_unknown_source(cls, v: Any) -> Any:
        valid = {s.value for s in ConstraintSource}
        return v if v in valid else ConstraintSource.CONVERSATION


class ConstraintUpdate(_ExtractItem):
    id: Text = ""
    description: Text = ""


class NewOpenQuestion(_ExtractItem):
    question: Text = ""
    context: Text = ""


class ResolvedQuestion(_ExtractItem):
    question: Text = ""
    resolution: str | None = None


class FinishBranch(_ExtractItem):
    option_title: Text = ""
    reason: str | None = None


class DeleteById(_ExtractItem):
    id: Text = ""


class BranchTodos(_ExtractItem):
    option_id: Text = ""
    todos: Text = ""


class DesignExtract(BaseModel):
    """Per-turn canvas delta proposed by the model."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    problem_statement_update: str | None = None
    new_options: list[NewOption] = []
    update_options: list[OptionUpdate] = []
    option_status_changes: list[OptionStatusChange] = []
    new_decisions: list[NewDecision] = []
    update_decisions: list[DecisionUpdate] = []
    new_constraints: list[NewConstraint] = []
    update_constraints: list[ConstraintUpdate] = []
    new_open_questions: list[NewOpenQuestion] = []
    resolved_questions: list[ResolvedQuestion] = []
    # Branch lifecycle + model-driven deletions
    finish_branches: list[FinishBranch] = []
    delete_decisions: list[DeleteById] = []
    delete_constraints: list[DeleteById] = []
    delete_open_questions: list[DeleteById] = []
    set_branch_todos: list[BranchTodos] = []

    @field_validator(
        "new_options", "update_options", "option_status_changes",
        "new_decisions", "update_decisions", "new_constraints",
        "update_constraints", "new_open_questions", "resolved_questions",
        "finish_branches", "delete_decisions", "delete_constraints",
        "delete_open_questions", "set_branch_todos",
        mode="before",
    )
    @classmethod
    def drop_invalid_entries(cls, v: Any, info: ValidationInfo) -> list:
        if v is None:
            return []
        if not isinstance(v, list):
            logger.warning(f"Extract field {info.field_name} is not a list, ignored")
            return []
        (item_model,) = get_args(cls.model_fields[info.field_name].annotation)
        kept = []
        for index, entry in enumerate(v):
            try:
                kept.append(item_model.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    f"Dropped invalid extract entry {info.field_name}[{index}]: "
                    f"{e.errors()[0]['msg']}",
                    extra={"field": info.field_name},
                )
        return kept

    @field_validator("problem_statement_update", mode="before")
    @classmethod
    def non_string_statement_to_none(cls, v: Any) -> Any:
        return v if v is None or isinstance(v, str) else None

    @property
    def is_empty(self) -> bool:
        """True when applying this extract cannot change a canvas."""
        return self == empty_extract()


def empty_extract() -> DesignExtract:
    """Canonical empty extract — every list empty, every optional scalar None."""
    return DesignExtract()
