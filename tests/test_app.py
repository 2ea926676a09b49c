"""Tests for the FastAPI report server."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import StubCompletionService, analysis, make_pipeline
from project_report.domain.entities import RunReport, RunState
from project_report.domain.exceptions import (
    PathNotFoundError,
    ProjectReportError,
    RootPermissionError,
    TemplateError,
    UnknownFolderError,
    UpstreamError,
)
from project_report.interface.app import create_app
from project_report.interface.error_handlers import status_for


@pytest.fixture
def finished_report(project: Path) -> RunReport:
    return asyncio.run(make_pipeline(project, StubCompletionService(analysis("src"))).run())


@pytest.fixture
def client(finished_report: RunReport) -> TestClient:
    return TestClient(create_app(finished_report))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_report_endpoint(client: TestClient, project: Path) -> None:
    response = client.get("/report")

    assert response.status_code == 200
    data = response.json()
    assert data["analysis_key"] == ["src"]
    assert [s["path"] for s in data["summaries"]] == [
        str(project / "src" / "README.md"),
        str(project / "src" / "main.py"),
        str(project / "src" / "util" / "helpers.py"),
    ]
    assert data["errors"] == []


def test_progress_endpoint(client: TestClient) -> None:
    data = client.get("/progress").json()
    assert data["total_files"] == data["completed_files"] == 3
    assert len(data["summaries"]) == 3


def test_filtered_tree_endpoint(client: TestClient) -> None:
    data = client.get("/filtered-tree").json()

    assert data["name"] == "project"
    (src,) = data["subdirs"]
    assert [f["name"] for f in src["files"]] == ["README.md", "main.py"]
    assert src["subdirs"][0]["files"][0]["summary"] == "Summary: return 1"


def test_get_file_serves_reported_files(client: TestClient, project: Path) -> None:
    response = client.get("/get-file", params={"path": str(project / "src" / "main.py")})
    assert response.status_code == 200
    assert response.text == "print('main')\n"


def test_get_file_refuses_other_paths(client: TestClient, project: Path) -> None:
    response = client.get("/get-file", params={"path": str(project / "docs" / "guide.md")})

    assert response.status_code == 404
    assert response.json()["status"] == "error"


def test_get_file_requires_path(client: TestClient) -> None:
    response = client.get("/get-file")
    assert response.status_code == 422
    assert "path" in response.json()["message"]


def test_failed_run_maps_to_error_envelope() -> None:
    error = UpstreamError("provider down", 503)
    error.stage = "classifying"
    report = RunReport(
        root="/p", state=RunState.FAILED, failed_stage=RunState.CLASSIFYING, error=error
    )

    response = TestClient(create_app(report)).get("/report")

    assert response.status_code == 502
    assert response.json() == {
        "status": "error",
        "message": "provider down",
        "stage": "classifying",
    }


class _ThrottledError(UpstreamError):
    pass


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (PathNotFoundError("Project path does not exist: /p"), 404),
        (RootPermissionError("Cannot read project path: /p"), 403),
        (UnknownFolderError(["invented"]), 502),
        (TemplateError("missing placeholder"), 500),
        (_ThrottledError("slow down", 429), 502),
        (ProjectReportError("unclassified"), 500),
    ],
)
def test_domain_errors_share_one_handler(error: ProjectReportError, expected: int) -> None:
    report = RunReport(root="/p", state=RunState.FAILED, error=error)

    response = TestClient(create_app(report)).get("/report")

    assert status_for(error) == expected
    assert response.status_code == expected
    assert response.json()["status"] == "error"
    assert response.json()["message"] == str(error)
