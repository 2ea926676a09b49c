"""Dependency wiring: build adapters and the pipeline from settings."""

from __future__ import annotations

from fastapi import Request

from project_report.domain.entities import RunReport
from project_report.domain.ports.completion_service import CompletionService
from project_report.infrastructure.config import Settings
from project_report.infrastructure.llama_adapter import LlamaCppCompletionService
from project_report.infrastructure.openai_adapter import OpenAICompletionService
from project_report.services.file_scanner import FileScanner
from project_report.services.file_summarizer import FileSummarizer
from project_report.services.folder_classifier import FolderClassifier
from project_report.services.run_pipeline import ProjectReportPipeline


def build_completion_service(settings: Settings) -> CompletionService:
    """Create the one completion-service client shared by the whole run."""
    if settings.completion_provider == "llama":
        return LlamaCppCompletionService(
            settings.llama_base_url,
            n_predict=settings.llama_n_predict,
            temperature=settings.llama_temperature,
            max_retries=settings.max_retries,
            timeout=settings.request_timeout,
            max_connections=settings.max_concurrency,
        )

    assert settings.openai_api_key is not None, "Settings validation was bypassed"
    return OpenAICompletionService(
        api_key=settings.openai_api_key.get_secret_value(),
        model=settings.openai_model,
        system_prompt=settings.openai_system_prompt or None,
        base_url=settings.openai_base_url,
        max_retries=settings.max_retries,
        timeout=settings.request_timeout,
        max_connections=settings.max_concurrency,
    )


def build_pipeline(settings: Settings, service: CompletionService) -> ProjectReportPipeline:
    """Build the pipeline with injected service and settings-derived stages."""
    ignored = frozenset(settings.ignored_folders)
    return ProjectReportPipeline(
        root=settings.project_path,
        classifier=FolderClassifier(
            service,
            settings.folder_template,
            unknown_policy=settings.unknown_folder_policy,
        ),
        scanner=FileScanner(settings.allow_list, ignored=ignored),
        summarizer=FileSummarizer(
            service,
            settings.file_template,
            max_concurrency=settings.max_concurrency,
            chunk_lines=settings.chunk_lines,
            merge_template=settings.merge_template,
        ),
        collect_depth=settings.collect_depth,
        ignored=ignored,
    )


def get_report(request: Request) -> RunReport:
    """FastAPI dependency: the report the app was created with."""
    report: RunReport = request.app.state.report
    return report
