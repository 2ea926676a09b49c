"""Port: completion service, defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol


class CompletionService(Protocol):
    """Text-completion capability, one method per prompt shape."""

    async def classify_folders(self, prompt: str) -> str:
        """Send the rendered folder-analysis prompt; the reply should be JSON."""
        ...

    async def summarize_file(self, prompt: str) -> str:
        """Send a rendered file-summary prompt and return the free-text reply."""
        ...

    async def close(self) -> None:
        """Release underlying connections."""
        ...
