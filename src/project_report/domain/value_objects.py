"""Value objects: self-validating domain primitives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from project_report.domain.exceptions import TemplateError

FOLDERS_PLACEHOLDER = "{folders}"
EXTRA_FOLDERS_PLACEHOLDER = "{extra_folders}"
CONTENT_PLACEHOLDER = "{}"

CANONICAL_EXTENSIONS: tuple[str, ...] = (
    "rs", "py", "js", "ts", "java", "cpp", "c", "go",
    "sh", "rb", "bat", "cs", "resx", "h", "md",
)


def _require(template: str, placeholder: str, label: str) -> None:
    if placeholder not in template:
        raise TemplateError(
            f"{label} template is missing the required placeholder '{placeholder}'."
        )


@dataclass(frozen=True, slots=True)
class FolderPromptTemplate:
    """Folder-analysis prompt with ``{folders}`` and ``{extra_folders}``.

    Rendering is plain substitution rather than :meth:`str.format`, so the
    template may contain literal braces (a JSON example, for instance).
    """

    text: str

    @classmethod
    def from_string(cls, template: str) -> FolderPromptTemplate:
        _require(template, FOLDERS_PLACEHOLDER, "Folder-analysis")
        _require(template, EXTRA_FOLDERS_PLACEHOLDER, "Folder-analysis")
        return cls(text=template)

    def render(self, folders: str, extra_folders: str = "") -> str:
        return self.text.replace(EXTRA_FOLDERS_PLACEHOLDER, extra_folders).replace(
            FOLDERS_PLACEHOLDER, folders
        )


@dataclass(frozen=True, slots=True)
class FilePromptTemplate:
    """Prompt with a single positional ``{}`` placeholder for file contents."""

    text: str

    @classmethod
    def from_string(cls, template: str, label: str = "File-summary") -> FilePromptTemplate:
        _require(template, CONTENT_PLACEHOLDER, label)
        return cls(text=template)

    def render(self, contents: str) -> str:
        return self.text.replace(CONTENT_PLACEHOLDER, contents)


@dataclass(frozen=True, slots=True)
class ExtensionAllowList:
    """Case-insensitive set of file extensions eligible for summarisation."""

    extensions: frozenset[str]

    @classmethod
    def from_iterable(cls, extensions: Iterable[str]) -> ExtensionAllowList:
        normalised = frozenset(e.strip().lstrip(".").lower() for e in extensions)
        normalised = normalised - {""}
        if not normalised:
            raise ValueError("The file-extension allow-list must not be empty.")
        return cls(extensions=normalised)

    def matches(self, filename: str) -> bool:
        """Return *True* if *filename* has an extension on the list."""
        dot = filename.rfind(".")
        if dot <= 0:
            return False
        return filename[dot + 1 :].lower() in self.extensions
