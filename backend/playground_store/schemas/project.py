"""
Pydantic v2 schemas for projects and files.

Separation:
  • *Create / ProjectMetadata — what the caller hands to the mutations.
  • *Read / ProjectHeader    — what the queries return, names unescaped.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ── Input schemas ───────────────────────────────────────────
class ProjectFileCreate(BaseModel):
    """One file in an incoming project payload."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    text: str = Field(default="", description="File content.")


class ProjectCreate(BaseModel):
    """Payload accepted by ProjectMutations.create_project."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    args: str = Field(default="", description="Program arguments.")
    run_configuration: str = Field(
        default="java",
        max_length=50,
        examples=["java", "js", "junit", "canvas"],
    )
    origin: str | None = Field(
        default=None,
        description="URL of the example this project was copied from.",
    )
    read_only_file_names: list[str] = Field(default_factory=list)
    files: list[ProjectFileCreate] = Field(default_factory=list)


class ProjectMetadata(BaseModel):
    """Fields rewritten by save_project_metadata. name selects the row."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    args: str = ""
    run_configuration: str = Field(default="java", max_length=50)


# ── Output schemas ──────────────────────────────────────────
class ProjectHeader(BaseModel):
    """Entry of a user's project list."""

    name: str
    public_id: str


class ProjectFileRead(BaseModel):
    public_id: str
    name: str
    content: str


class ProjectRead(BaseModel):
    """Full project with its files."""

    public_id: str
    name: str
    args: str
    run_configuration: str
    origin: str | None = None
    read_only_file_names: list[str] = Field(default_factory=list)
    files: list[ProjectFileRead] = Field(default_factory=list)


class TemplateProject(BaseModel):
    """Ids created by create_project_from_template."""

    project_id: str
    file_id: str
