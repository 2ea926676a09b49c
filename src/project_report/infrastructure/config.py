"""Application configuration, loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from project_report.domain.value_objects import (
    CANONICAL_EXTENSIONS,
    ExtensionAllowList,
    FilePromptTemplate,
    FolderPromptTemplate,
)
from project_report.services.file_summarizer import (
    DEFAULT_CHUNK_MERGE_PROMPT,
    DEFAULT_FILE_SUMMARY_PROMPT,
)
from project_report.services.folder_classifier import DEFAULT_FOLDER_ANALYSIS_PROMPT
from project_report.services.folder_collector import DEFAULT_IGNORED_FOLDERS


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Completion service
    completion_provider: Literal["openai", "llama"] = "openai"
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    openai_system_prompt: str = "You are a senior software analyst."
    llama_base_url: str = "http://127.0.0.1:9090"
    llama_n_predict: int = 4096
    llama_temperature: float = 0.2
    max_concurrency: int = Field(default=4, ge=1)
    max_retries: int = Field(default=0, ge=0)
    request_timeout: float = Field(default=60.0, gt=0)
    run_deadline: float | None = Field(default=None, gt=0)

    # Project scan
    project_path: str = "."
    collect_depth: int = Field(default=1, ge=1)
    code_file_extensions: list[str] = list(CANONICAL_EXTENSIONS)
    ignored_folders: list[str] = sorted(DEFAULT_IGNORED_FOLDERS)
    unknown_folder_policy: Literal["drop", "reject"] = "drop"

    # Prompts
    folder_analysis_prompt: str = DEFAULT_FOLDER_ANALYSIS_PROMPT
    file_summary_prompt: str = DEFAULT_FILE_SUMMARY_PROMPT
    chunk_merge_prompt: str = DEFAULT_CHUNK_MERGE_PROMPT
    chunk_lines: int | None = Field(default=None, ge=1)

    # Server / logging
    host: str = "127.0.0.1"
    port: int = Field(default=3030, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("folder_analysis_prompt")
    @classmethod
    def _check_folder_prompt(cls, v: str) -> str:
        FolderPromptTemplate.from_string(v)
        return v

    @field_validator("file_summary_prompt")
    @classmethod
    def _check_file_prompt(cls, v: str) -> str:
        FilePromptTemplate.from_string(v)
        return v

    @field_validator("chunk_merge_prompt")
    @classmethod
    def _check_merge_prompt(cls, v: str) -> str:
        FilePromptTemplate.from_string(v, label="Chunk-merge")
        return v

    @field_validator("code_file_extensions")
    @classmethod
    def _check_extensions(cls, v: list[str]) -> list[str]:
        return sorted(ExtensionAllowList.from_iterable(v).extensions)

    @model_validator(mode="after")
    def _require_api_key(self) -> Settings:
        if self.completion_provider == "openai" and self.openai_api_key is None:
            msg = "OPENAI_API_KEY must be set when COMPLETION_PROVIDER is 'openai'."
            raise ValueError(msg)
        return self

    # ── Typed views ─────────────────────────────────────────────────────

    @property
    def folder_template(self) -> FolderPromptTemplate:
        return FolderPromptTemplate.from_string(self.folder_analysis_prompt)

    @property
    def file_template(self) -> FilePromptTemplate:
        return FilePromptTemplate.from_string(self.file_summary_prompt)

    @property
    def merge_template(self) -> FilePromptTemplate:
        return FilePromptTemplate.from_string(self.chunk_merge_prompt, label="Chunk-merge")

    @property
    def allow_list(self) -> ExtensionAllowList:
        return ExtensionAllowList.from_iterable(self.code_file_extensions)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
