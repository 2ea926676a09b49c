"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from project_report.domain.entities import RunReport
from project_report.interface.error_handlers import register_error_handlers
from project_report.interface.routes import router


def create_app(report: RunReport) -> FastAPI:
    """Build the read-only report server for a finished run."""
    app = FastAPI(
        title="Project Report",
        version="1.0.0",
        description=(
            "Serves the result of one project-report run: the folders "
            "classified as source code and a summary of every code file in them."
        ),
    )
    app.state.report = report

    register_error_handlers(app)
    app.include_router(router)

    # ── Health check (liveness) ─────────────────────────────────────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
