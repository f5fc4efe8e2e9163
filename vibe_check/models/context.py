from __future__ import annotations

from collections import Counter
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Language(StrEnum):
    """Language tags resolved from file extensions."""

    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    C = "c"
    CSHARP = "csharp"
    PHP = "php"
    RUBY = "ruby"
    GO = "go"
    RUST = "rust"
    SWIFT = "swift"
    KOTLIN = "kotlin"
    SCALA = "scala"
    BASH = "bash"
    SQL = "sql"
    HTML = "html"
    CSS = "css"
    SCSS = "scss"
    JSON = "json"
    YAML = "yaml"
    XML = "xml"
    MARKDOWN = "markdown"
    TEXT = "text"


class FileEntry(BaseModel):
    """A single source file accepted into the scan context."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path relative to the scan root, posix separators")
    content: str = Field(..., description="UTF-8 decoded file content")
    language: Language = Field(default=Language.TEXT, description="Detected language tag")
    size: int = Field(..., ge=0, description="Content length in characters")

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))


class ContextSummary(BaseModel):
    """Aggregate statistics over the files of a context."""

    model_config = ConfigDict(frozen=True)

    total_files: int = Field(default=0, ge=0)
    total_lines: int = Field(default=0, ge=0)
    languages: dict[Language, int] = Field(default_factory=dict)
    largest_file: str = Field(default="", description="Path of the largest file")
    average_file_size: int = Field(default=0, ge=0)

    @classmethod
    def from_files(cls, files: tuple[FileEntry, ...] | list[FileEntry]) -> ContextSummary:
        """Compute the summary for a set of files.

        Args:
            files: Accepted file entries.

        Returns:
            Summary where ``total_files == len(files)`` and the language
            histogram sums to the same number.
        """
        languages: Counter[Language] = Counter(entry.language for entry in files)
        largest_file = ""
        largest_size = 0
        for entry in files:
            # strict comparison keeps the first of equally sized files
            if entry.size > largest_size:
                largest_size = entry.size
                largest_file = entry.path

        total_size = sum(entry.size for entry in files)
        return cls(
            total_files=len(files),
            total_lines=sum(entry.line_count for entry in files),
            languages=dict(languages),
            largest_file=largest_file,
            average_file_size=round(total_size / len(files)) if files else 0,
        )


class CodebaseContext(BaseModel):
    """Snapshot of the files selected from a codebase plus their statistics."""

    model_config = ConfigDict(frozen=True)

    root: Path
    files: tuple[FileEntry, ...] = ()
    summary: ContextSummary = Field(default_factory=ContextSummary)

    @classmethod
    def from_files(
        cls, root: Path, files: tuple[FileEntry, ...] | list[FileEntry]
    ) -> CodebaseContext:
        entries = tuple(files)
        return cls(root=root, files=entries, summary=ContextSummary.from_files(entries))

    def paths(self) -> set[str]:
        return {entry.path for entry in self.files}
