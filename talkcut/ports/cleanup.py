"""TextCleanupPort: abstract interface for the language-cleanup service."""

from abc import ABC, abstractmethod


class TextCleanupPort(ABC):
    @abstractmethod
    async def clean(self, text: str) -> str:
        """Return corrected text. Carries no timing; word count may differ.

        Raises CleanupServiceError on failure.
        """
