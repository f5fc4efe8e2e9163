from typing import Final

from pydantic import BaseModel

from vibe_check.errors import ValidationError
from vibe_check.models.context import CodebaseContext, FileEntry, Language

PRIMARY_LANGUAGES: Final[frozenset[Language]] = frozenset(
    {Language.TYPESCRIPT, Language.JAVASCRIPT}
)
DEFAULT_MAX_FILES: Final[int] = 15


def priority_key(entry: FileEntry) -> tuple[int, int, str]:
    """Sort key: primary-language tier first, then larger files, then path."""
    tier = 0 if entry.language in PRIMARY_LANGUAGES else 1
    return (tier, -entry.size, entry.path)


class ContextCondenser(BaseModel):
    """Reduce a context to the files most worth sending in a single request."""

    max_files: int = DEFAULT_MAX_FILES

    def condense(self, context: CodebaseContext, max_files: int | None = None) -> CodebaseContext:
        """Select at most ``max_files`` files by priority.

        Args:
            context: Full context produced by the builder.
            max_files: Override for the configured limit.

        Returns:
            New context with ``min(max_files, len(context.files))`` files and a
            summary recomputed for that subset. The result depends only on the
            set of input files, not on their order.

        Raises:
            ValidationError: If the limit is negative.
        """
        limit = self.max_files if max_files is None else max_files
        if limit < 0:
            raise ValidationError(f"max_files must be non-negative, got {limit}")

        ranked = sorted(context.files, key=priority_key)
        return CodebaseContext.from_files(context.root, ranked[:limit])
