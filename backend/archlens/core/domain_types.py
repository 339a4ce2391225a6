"""Domain Types — enums and constants shared by every layer.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - ACTIVE_ELIGIBLE_STATUSES is the single source of truth for active-branch eligibility

Design Decisions:
    - str Enums: serialize to JSON without custom encoders (ADR: export document is plain JSON)
"""

from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class SpaceStatus(str, Enum):
    """Design space lifecycle — converging once any decision exists."""
    EXPLORING = "exploring"
    CONVERGING = "converging"
    CRYSTALLIZED = "crystallized"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class OptionStatus(str, Enum):
    """Branch lifecycle states."""
    CONSIDERING = "considering"
    SELECTED = "selected"
    REJECTED = "rejected"
    FINISHED = "finished"


class ConstraintSource(str, Enum):
    CONVERSATION = "conversation"
    CODE = "code"
    EXTERNAL = "external"


class QuestionStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class ReferenceType(str, Enum):
    CODE_SNIPPET = "code_snippet"
    URL = "url"
    PASTE = "paste"


class ElementType(str, Enum):
    """Kinds of canvas items a message can be traced to."""
    OPTION = "option"
    DECISION = "decision"
    CONSTRAINT = "constraint"
    OPEN_QUESTION = "open_question"


class AttachableKind(str, Enum):
    """Canvas items that may hang off a decision."""
    CONSTRAINT = "constraint"
    QUESTION = "question"
    REFERENCE = "reference"


class CanvasSection(str, Enum):
    """Drop targets on the canvas."""
    PROBLEM_STATEMENT = "problem_statement"
    OPTIONS = "options"
    DECISIONS = "decisions"
    CONSTRAINTS = "constraints"
    OPEN_QUESTIONS = "open_questions"
    REFERENCES = "references"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


# ─── Constants ───────────────────────────────────────────────────

ACTIVE_ELIGIBLE_STATUSES = frozenset({OptionStatus.CONSIDERING, OptionStatus.SELECTED})
DEFAULT_BRANCH_SCORE = 5
COMPACT_TITLE_MAX_CHARS = 80
EXPORT_FORMAT_VERSION = 1
