from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Final

from pydantic import BaseModel

from vibe_check.errors import ContextBuildError
from vibe_check.models.context import Language

logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION: Final[dict[str, Language]] = {
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".py": Language.PYTHON,
    ".java": Language.JAVA,
    ".cpp": Language.CPP,
    ".cc": Language.CPP,
    ".hpp": Language.CPP,
    ".c": Language.C,
    ".h": Language.C,
    ".cs": Language.CSHARP,
    ".php": Language.PHP,
    ".rb": Language.RUBY,
    ".go": Language.GO,
    ".rs": Language.RUST,
    ".swift": Language.SWIFT,
    ".kt": Language.KOTLIN,
    ".scala": Language.SCALA,
    ".sh": Language.BASH,
    ".sql": Language.SQL,
    ".html": Language.HTML,
    ".css": Language.CSS,
    ".scss": Language.SCSS,
    ".json": Language.JSON,
    ".yaml": Language.YAML,
    ".yml": Language.YAML,
    ".xml": Language.XML,
    ".md": Language.MARKDOWN,
}

IGNORED_DIRS: Final[frozenset[str]] = frozenset(
    {
        "node_modules",
        ".git",
        ".vscode",
        ".idea",
        "dist",
        "build",
        "target",
        "__pycache__",
        ".next",
        ".nuxt",
        "coverage",
        ".nyc_output",
    }
)


def detect_language(path: str | Path) -> Language:
    """Resolve the language tag of a file from its extension."""
    return LANGUAGE_BY_EXTENSION.get(Path(path).suffix.lower(), Language.TEXT)


def is_supported_file(name: str) -> bool:
    return Path(name).suffix.lower() in LANGUAGE_BY_EXTENSION


def is_ignored_dir(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_DIRS


class FileDiscoveryService(BaseModel):
    """Enumerate supported source files under a project root."""

    root: Path

    def resolve_root(self) -> Path:
        """Return the absolute scan root with ``~`` expanded.

        Raises:
            ContextBuildError: If the root is missing, not a directory or
                cannot be listed.
        """
        root = self.root.expanduser()
        if not root.exists():
            raise ContextBuildError(f"Failed to scan directory: {root}", root)
        if not root.is_dir():
            raise ContextBuildError(f"Not a directory: {root}", root)
        try:
            resolved = root.resolve()
            # listing the root up front surfaces permission errors as a context failure
            with os.scandir(resolved):
                pass
        except OSError as exc:
            raise ContextBuildError(f"Failed to scan directory: {root}", root, cause=exc) from exc
        return resolved

    def iter_files(self) -> Iterator[Path]:
        """Yield absolute paths of supported files, depth-first.

        Hidden and ignored directories are pruned, symlinked directories are
        not followed and symlinked files that point outside the root are
        skipped. Order inside a directory is the filesystem's own.

        Raises:
            ContextBuildError: If the root is missing or cannot be listed.
        """
        root = self.resolve_root()

        def _on_error(error: OSError) -> None:
            logger.warning("Skipping unreadable directory %s: %s", error.filename, error)

        for current, dirs, files in os.walk(root, onerror=_on_error, followlinks=False):
            dirs[:] = [d for d in dirs if not is_ignored_dir(d)]
            current_path = Path(current)
            for name in files:
                if not is_supported_file(name):
                    continue
                candidate = current_path / name
                if candidate.is_symlink() and not self._inside_root(candidate, root):
                    logger.warning("Skipping symlink outside scan root: %s", candidate)
                    continue
                if not candidate.is_file():
                    continue
                yield candidate

    def discover(self) -> list[Path]:
        return list(self.iter_files())

    @staticmethod
    def _inside_root(path: Path, root: Path) -> bool:
        try:
            path.resolve().relative_to(root)
        except (OSError, RuntimeError, ValueError):
            return False
        return True
