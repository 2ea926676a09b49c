"""API routes, thin controllers over the finished RunReport."""

from __future__ import annotations

import os

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from project_report.domain.entities import RunReport
from project_report.domain.exceptions import FileNotServedError
from project_report.interface.dependencies import get_report
from project_report.interface.presenter import build_tree, to_progress, to_response
from project_report.interface.schemas import ProgressResponse, RunReportResponse, TreeNode

router = APIRouter()


@router.get(
    "/report",
    response_model=RunReportResponse,
    responses={
        404: {"description": "Project path not found"},
        403: {"description": "Project path not readable"},
        502: {"description": "Completion service error or malformed folder analysis"},
    },
)
async def report(run: RunReport = Depends(get_report)) -> RunReportResponse:
    """Relevant folders, per-file summaries and per-file errors."""
    if run.error is not None:
        raise run.error
    return to_response(run)


@router.get("/progress", response_model=ProgressResponse)
async def progress(run: RunReport = Depends(get_report)) -> ProgressResponse:
    return to_progress(run)


@router.get("/filtered-tree", response_model=TreeNode)
async def filtered_tree(run: RunReport = Depends(get_report)) -> TreeNode:
    return build_tree(run)


@router.get("/get-file", response_class=PlainTextResponse)
async def get_file(
    path: str = Query(..., min_length=1),
    run: RunReport = Depends(get_report),
) -> PlainTextResponse:
    """Contents of a file in the report; anything else is refused."""
    wanted = os.path.normpath(path)
    for file in run.files:
        if os.path.normpath(file.path) == wanted:
            return PlainTextResponse(file.contents)
    raise FileNotServedError(f"File is not part of this report: {path}")
