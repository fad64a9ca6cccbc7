"""Assembly of selected chunks into the context handed to generation."""

from pathlib import Path
from typing import Sequence

from loguru import logger

from .sanitizer import Sanitizer

NO_CONTEXT_SENTINEL = "NO_RELEVANT_CONTEXT: the document contains nothing relevant to the question."

DEFAULT_SEPARATOR = "\n\n---\n\n"


def filtered_context_path(source_name: str, directory: str | Path = "pdfs") -> Path:
    """Conventional location of the filtered context file for a source document."""
    return Path(directory) / f"{source_name}_contextfiltered.txt"


class ContextAssembler:
    """
    Joins ranked chunk texts into one context string.

    The output is either the sanitized chunks joined by ``separator`` (best
    chunk first) or exactly ``sentinel`` when nothing was selected. The
    generation step must treat the sentinel as "out of scope".

    Attributes:
        sanitizer: Injection deny-list applied to every chunk
        separator: Marker between chunks; ``split`` relies on it
        sentinel: Output for an empty selection
        max_context_chars: Optional size cap; lowest ranked chunks go first
    """

    def __init__(
        self,
        sanitizer: Sanitizer | None = None,
        separator: str = DEFAULT_SEPARATOR,
        sentinel: str = NO_CONTEXT_SENTINEL,
        max_context_chars: int | None = None,
    ):
        if not separator:
            raise ValueError("separator must not be empty")
        if max_context_chars is not None and max_context_chars <= 0:
            raise ValueError("max_context_chars must be positive")

        self.sanitizer = sanitizer or Sanitizer()
        self.separator = separator
        self.sentinel = sentinel
        self.max_context_chars = max_context_chars

    def assemble(self, chunks: Sequence[str]) -> str:
        if not chunks:
            logger.info("No chunks selected, returning the no-context sentinel")
            return self.sentinel

        parts: list[str] = []
        stripped: list[str] = []
        for chunk in chunks:
            result = self.sanitizer.sanitize(chunk)
            stripped.extend(result.matches)
            parts.append(result.text)

        if stripped:
            logger.warning(
                f"Neutralized {len(stripped)} injection pattern matches in context: "
                f"{sorted(set(stripped))}"
            )

        if self.max_context_chars is not None:
            parts = self._fit(parts)

        return self.separator.join(parts)

    def _fit(self, parts: list[str]) -> list[str]:
        limit = self.max_context_chars
        kept: list[str] = []
        length = 0

        for part in parts:
            added = len(part) + (len(self.separator) if kept else 0)
            if length + added > limit:
                if not kept:
                    kept.append(part[:limit])
                break
            kept.append(part)
            length += added

        if len(kept) < len(parts) or len(kept[0]) < len(parts[0]):
            logger.debug(
                f"Context capped at {limit} chars: kept {len(kept)}/{len(parts)} chunks"
            )
        return kept

    def split(self, context: str) -> list[str]:
        """Recover the chunk texts of an assembled context."""
        if not context or context == self.sentinel:
            return []
        return context.split(self.separator)

    def write(self, context: str, path: str | Path) -> Path:
        """Persist a context for the generation step; returns the path written."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(context, encoding="utf-8")
        logger.info(f"Wrote {len(context)} chars of context to {path}")
        return path
