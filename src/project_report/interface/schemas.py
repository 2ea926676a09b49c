"""Pydantic response DTOs for the API boundary (and the ``--output`` file)."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SummaryItem(BaseModel):
    path: str
    text: str


class ErrorItem(BaseModel):
    """A file whose summary request failed."""

    path: str
    message: str
    status_code: int | None = None


class WarningItem(BaseModel):
    path: str
    kind: str
    message: str


class RunReportResponse(BaseModel):
    """Body of ``GET /report``."""

    state: str
    root: str
    analysis_key: list[str]
    summaries: list[SummaryItem]
    errors: list[ErrorItem]
    warnings: list[WarningItem] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class ProgressResponse(BaseModel):
    """Body of ``GET /progress``."""

    state: str
    total_files: int
    completed_files: int
    summaries: dict[str, str]


class TreeFile(BaseModel):
    name: str
    path: str
    summary: str | None = None


class TreeNode(BaseModel):
    """Directory node of ``GET /filtered-tree``."""

    name: str
    path: str
    subdirs: list[TreeNode] = Field(default_factory=list)
    files: list[TreeFile] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
    stage: str | None = None


TreeNode.model_rebuild()
