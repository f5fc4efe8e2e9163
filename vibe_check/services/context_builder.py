from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict

from vibe_check.errors import ContextBuildError
from vibe_check.models.context import CodebaseContext, FileEntry
from vibe_check.services.discovery import FileDiscoveryService, detect_language
from vibe_check.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

MAX_FILE_SIZE: Final[int] = 100 * 1024
# worst case UTF-8 width, a file larger than this cannot decode under the character cap
BYTES_PER_CHAR: Final[int] = 4


class FileTooLargeError(ValueError):
    """Raised by :func:`read_source_file` when content exceeds the size cap."""


def relative_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def read_source_file(path: Path, root: Path, max_size: int = MAX_FILE_SIZE) -> FileEntry:
    """Read one file into a FileEntry.

    Args:
        path: Absolute path of the file.
        root: Scan root used to compute the relative path.
        max_size: Maximum accepted content length in characters.

    Returns:
        Entry tagged with the language detected from the extension.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the content is not valid UTF-8.
        FileTooLargeError: If the file or its decoded content is larger than
            ``max_size``.
    """
    byte_limit = max_size * BYTES_PER_CHAR
    size = path.stat().st_size
    if size > byte_limit:
        raise FileTooLargeError(f"{size} bytes exceeds limit of {byte_limit}")
    with path.open("rb") as handle:
        raw = handle.read(byte_limit + 1)
    if len(raw) > byte_limit:
        raise FileTooLargeError(f"file grew past {byte_limit} bytes while reading")
    content = raw.decode("utf-8")
    if len(content) > max_size:
        raise FileTooLargeError(f"{len(content)} characters exceeds limit of {max_size}")
    return FileEntry(
        path=relative_posix(path, root),
        content=content,
        language=detect_language(path),
        size=len(content),
    )


class ContextBuilderService(BaseModel):
    """Read discovered files into a CodebaseContext."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_file_size: int = MAX_FILE_SIZE
    max_workers: int = 8
    cancellation: CancellationToken | None = None

    def build(self, root: str | Path) -> CodebaseContext:
        """Build the full context of a codebase.

        Unreadable, undecodable and oversized files are logged and skipped.

        Args:
            root: Directory to scan.

        Returns:
            Context with every accepted file, in discovery order.

        Raises:
            ContextBuildError: If the directory cannot be scanned, contains no
                supported files, or none of its files could be accepted.
        """
        if not str(root).strip():
            raise ContextBuildError("Root directory path is required and must be a string")

        discovery = FileDiscoveryService(root=Path(root))
        resolved_root = discovery.resolve_root()
        paths = discovery.discover()
        if not paths:
            raise ContextBuildError(f"No supported files found in directory: {root}", root)

        entries = self._read_all(paths, resolved_root)
        if not entries:
            raise ContextBuildError(
                "No readable files found or all files exceed maximum size limit", root
            )

        logger.debug("Accepted %d of %d discovered files under %s", len(entries), len(paths), root)
        return CodebaseContext.from_files(resolved_root, entries)

    def _read_all(self, paths: list[Path], root: Path) -> list[FileEntry]:
        workers = max(1, min(self.max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda p: self._read_one(p, root), paths))
        self._check_cancelled("file reads")
        return [entry for entry in results if entry is not None]

    def _read_one(self, path: Path, root: Path) -> FileEntry | None:
        if self.cancellation is not None and self.cancellation.cancelled:
            return None
        try:
            return read_source_file(path, root, self.max_file_size)
        except FileTooLargeError as exc:
            logger.info("Skipping oversized file %s: %s", path, exc)
        except UnicodeDecodeError as exc:
            logger.warning("Could not decode file %s: %s", path, exc)
        except OSError as exc:
            logger.warning("Could not read file %s: %s", path, exc)
        return None

    def _check_cancelled(self, stage: str) -> None:
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled(stage)
