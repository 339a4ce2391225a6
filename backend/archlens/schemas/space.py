"""Space Schemas — request bodies for space lifecycle and conversation endpoints.

Invariants:
    - MessageCreate.content: 1-20000 chars, stripped, non-empty
    - Titles are stripped; a blank title is rejected
"""

from pydantic import BaseModel, Field, field_validator


def _strip_non_blank(v: str, name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{name} cannot be empty or whitespace")
    return v


class SpaceCreate(BaseModel):
    title: str | None = Field(None, max_length=200)


class SpaceRename(BaseModel):
    title: str = Field(min_length=1, max_length=200)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_non_blank(v, "title")


class ActiveSpaceBody(BaseModel):
    space_id: str = Field(min_length=1)


class MessageCreate(BaseModel):
    """One user turn."""
    content: str = Field(min_length=1, max_length=20_000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_non_blank(v, "content")


class TaskBody(BaseModel):
    title: str
    description: str = ""
    context: str = ""
    files_components: list[str] = []
    acceptance_criteria: list[str] = []
    depends_on: list[str] = []
    related_decisions: list[str] = []


class OutputsBody(BaseModel):
    """Crystallized artifacts, stored verbatim."""
    design_doc: str | None = None
    tasks: list[TaskBody] = []
