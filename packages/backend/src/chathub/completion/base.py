"""Text-completion provider interface.

Learn: The assistant is an opaque collaborator: ordered conversation
turns in, one reply string out. Providers translate that contract to a
vendor SDK and turn every vendor failure into GenerationError, so the
chat flow has exactly one failure type to handle.
"""

from abc import ABC, abstractmethod

Turn = dict[str, str]  # {"role": "user" | "assistant", "content": "..."}

FALLBACK_REPLY = "I couldn't generate a response."


class CompletionProvider(ABC):
    """Abstract base for text-completion backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in config and logs."""

    @abstractmethod
    async def complete(self, turns: list[Turn]) -> str:
        """Return the assistant's reply to `turns` (oldest first).

        Raises:
            GenerationError: the provider failed; nothing should be persisted.
        """
