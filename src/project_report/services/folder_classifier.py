"""Folder classification: ask the completion service which folders hold source code."""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Sequence

from project_report.domain.entities import ClassificationResult, FolderEntry
from project_report.domain.exceptions import MalformedResponseError, UnknownFolderError
from project_report.domain.ports.completion_service import CompletionService
from project_report.domain.value_objects import FolderPromptTemplate
from project_report.services.folder_collector import render_folder_listing

logger = logging.getLogger(__name__)

ANALYSIS_KEY = "analysis_key"

UnknownFolderPolicy = Literal["drop", "reject"]

DEFAULT_FOLDER_ANALYSIS_PROMPT = """\
Analyse the folder names below and keep only those that are likely to be \
user-written source code directories.  Return only a JSON object of the form \
{"analysis_key": [<matching folder names>]}; "analysis_key" must be the only \
key and its value the array of folder names exactly as listed.  Do not add \
any explanation.

Folder names:
{folders}
{extra_folders}"""


def render_extra_folders(entries: Sequence[FolderEntry]) -> str:
    if not entries:
        return ""
    return "Please also evaluate these folders:\n" + "\n".join(e.name for e in entries)


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    text = raw.strip()
    if text.startswith("```"):
        first_nl = text.index("\n") if "\n" in text else 3
        text = text[first_nl + 1 :]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


def parse_analysis(raw: str) -> list[str]:
    """Parse the folder-analysis reply into the list under ``analysis_key``."""
    try:
        data: Any = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Folder analysis is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or ANALYSIS_KEY not in data:
        raise MalformedResponseError(
            f"Folder analysis response has no '{ANALYSIS_KEY}' key."
        )
    names = data[ANALYSIS_KEY]
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise MalformedResponseError(
            f"'{ANALYSIS_KEY}' must be a list of folder names."
        )
    return names


def match_folder_name(
    name: str, known: set[str], folded: dict[str, list[str]]
) -> str | None:
    """Map a returned name onto one of the names that was sent.

    An exact match wins.  Otherwise a case-insensitive match is accepted only
    when exactly one sent name has that spelling; ``src`` next to ``Src`` is
    ambiguous and yields ``None``.
    """
    name = name.strip()
    if name in known:
        return name
    candidates = folded.get(name.lower(), [])
    if len(candidates) == 1:
        return candidates[0]
    return None


class FolderClassifier:
    """Single-request folder classification with a strict JSON contract.

    Parameters
    ----------
    service:
        Completion service used for the one folder-analysis request.
    template:
        Prompt with ``{folders}`` and ``{extra_folders}`` placeholders.
    unknown_policy:
        ``"drop"`` discards names that were never sent (with a warning);
        ``"reject"`` raises :class:`UnknownFolderError` instead.
    """

    def __init__(
        self,
        service: CompletionService,
        template: FolderPromptTemplate,
        *,
        unknown_policy: UnknownFolderPolicy = "drop",
    ) -> None:
        if unknown_policy not in ("drop", "reject"):
            raise ValueError(f"Unknown folder policy: {unknown_policy!r}")
        self._service = service
        self._template = template
        self._policy = unknown_policy

    async def classify(
        self,
        entries: Sequence[FolderEntry],
        extra_entries: Sequence[FolderEntry] = (),
    ) -> ClassificationResult:
        prompt = self._template.render(
            folders=render_folder_listing(entries),
            extra_folders=render_extra_folders(extra_entries),
        )
        raw = await self._service.classify_folders(prompt)
        logger.debug("Folder analysis reply: %s", raw)
        names = parse_analysis(raw)

        known = {e.name for e in [*entries, *extra_entries]}
        folded: dict[str, list[str]] = {}
        for sent in sorted(known):
            folded.setdefault(sent.lower(), []).append(sent)

        relevant: set[str] = set()
        unknown: list[str] = []
        for name in names:
            canonical = match_folder_name(name, known, folded)
            if canonical is None:
                unknown.append(name)
            else:
                relevant.add(canonical)

        if unknown:
            if self._policy == "reject":
                raise UnknownFolderError(unknown)
            logger.warning("Dropping unknown folder(s) from analysis: %s", ", ".join(unknown))

        logger.info("Classifier marked %d of %d folder(s) as relevant", len(relevant), len(known))
        return ClassificationResult(relevant_folders=frozenset(relevant), dropped=tuple(unknown))
