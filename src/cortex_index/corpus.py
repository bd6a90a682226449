"""
Corpus layout, document model, and the read-only scanner.

The storage root holds one sub-directory per category::

    knowledge/<project>/*.md
    branch_notes/<project>/*.md
    context/<project>/*.md
    archive/<dir>/*.md  or  archive/*.md
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS: frozenset[str] = frozenset({".md"})
_SYSTEM_FILES: frozenset[str] = frozenset({".DS_Store", "Thumbs.db", "desktop.ini"})


class Category(str, Enum):
    TACIT = "tacit"
    BRANCH_OVERALL = "branch_overall"
    BRANCH_ENTRY = "branch_entry"
    CONTEXT = "context"
    ARCHIVE = "archive"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: dict[Category, str] = {
    Category.TACIT: "Tacit Knowledge",
    Category.BRANCH_OVERALL: "Branch Notes",
    Category.BRANCH_ENTRY: "Branch Entries",
    Category.CONTEXT: "Context Files",
    Category.ARCHIVE: "Archives",
}

# Categories that map to a corpus directory. Branch entries are derived
# from branch notes and are never scanned on their own.
CATEGORY_DIRS: dict[Category, str] = {
    Category.TACIT: "knowledge",
    Category.BRANCH_OVERALL: "branch_notes",
    Category.CONTEXT: "context",
    Category.ARCHIVE: "archive",
}

SCANNED_CATEGORIES: tuple[Category, ...] = tuple(CATEGORY_DIRS)

ARCHIVE_NAMESPACE = "archives"


class CategoryUnreadableError(OSError):
    """A category root exists but cannot be listed."""


class StorageRootError(OSError):
    """The storage root is missing or inaccessible."""


def namespace_for(category: Category, project: str) -> str:
    """Return the store namespace for documents of *category* in *project*."""
    if category is Category.TACIT:
        return project
    if category in (Category.BRANCH_OVERALL, Category.BRANCH_ENTRY):
        return f"branch_notes_{project}"
    if category is Category.CONTEXT:
        return f"context_{project}"
    if category is Category.ARCHIVE:
        return ARCHIVE_NAMESPACE
    raise ValueError(f"Unsupported category: {category!r}")


def entry_id(branch_id: str, index: int) -> str:
    return f"{branch_id}_entry_{index}"


@dataclass(frozen=True)
class Document:
    """A corpus document loaded into memory."""

    category: Category
    project: str
    id: str
    source_path: str
    raw_text: str

    @property
    def namespace(self) -> str:
        return namespace_for(self.category, self.project)


@dataclass(frozen=True)
class DocumentSource:
    """A document located on disk but not yet read."""

    category: Category
    project: str
    id: str
    path: str

    @property
    def namespace(self) -> str:
        return namespace_for(self.category, self.project)

    def read(self) -> Document:
        with open(self.path, "r", encoding="utf-8") as f:
            raw_text = f.read()
        return Document(
            category=self.category,
            project=self.project,
            id=self.id,
            source_path=self.path,
            raw_text=raw_text,
        )


def is_eligible(name: str) -> bool:
    if name.startswith(".") or name in _SYSTEM_FILES:
        return False
    return Path(name).suffix.lower() in DOCUMENT_EXTENSIONS


class CorpusScanner:
    """Enumerate projects and documents per category under a storage root."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).expanduser()

    def check_root(self) -> None:
        if not self.root.is_dir():
            raise StorageRootError(f"No such directory: {self.root}")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise StorageRootError(f"Storage root is not readable: {self.root}")

    def category_root(self, category: Category) -> Path:
        try:
            return self.root / CATEGORY_DIRS[category]
        except KeyError:
            raise ValueError(f"Category {category.value!r} is not scanned") from None

    def category_exists(self, category: Category) -> bool:
        return self.category_root(category).exists()

    def list_projects(self, category: Category) -> list[str]:
        """
        Return sorted project directory names for *category*.

        A missing category root yields an empty list.
        """
        root = self.category_root(category)
        if not root.exists():
            return []
        try:
            entries = list(os.scandir(root))
        except OSError as exc:
            raise CategoryUnreadableError(
                f"Cannot read {category.label.lower()} at {root}: {exc}"
            ) from exc
        return sorted(
            entry.name
            for entry in entries
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def list_sources(self, category: Category, project: str) -> list[DocumentSource]:
        """Return eligible documents of one project; raises OSError when unreadable."""
        project_dir = self.category_root(category) / project
        names = sorted(
            entry.name
            for entry in os.scandir(project_dir)
            if entry.is_file() and is_eligible(entry.name)
        )
        sources: list[DocumentSource] = []
        for name in names:
            stem = Path(name).stem
            if category is Category.ARCHIVE:
                # Archive ids share one namespace, so the directory is part of the id.
                sources.append(
                    DocumentSource(
                        category=category,
                        project=project,
                        id=f"{project}_{stem}",
                        path=str(project_dir / name),
                    )
                )
            else:
                sources.append(
                    DocumentSource(
                        category=category,
                        project=project,
                        id=stem,
                        path=str(project_dir / name),
                    )
                )
        return sources

    def list_loose_archives(self) -> list[DocumentSource]:
        """Return `.md` files sitting directly under the archive root."""
        root = self.category_root(Category.ARCHIVE)
        if not root.exists():
            return []
        try:
            entries = list(os.scandir(root))
        except OSError as exc:
            raise CategoryUnreadableError(
                f"Cannot read archives at {root}: {exc}"
            ) from exc
        names = sorted(
            entry.name for entry in entries if entry.is_file() and is_eligible(entry.name)
        )
        return [
            DocumentSource(
                category=Category.ARCHIVE,
                project="",
                id=Path(name).stem,
                path=str(root / name),
            )
            for name in names
        ]

    def iter_sources(self, category: Category) -> Iterator[DocumentSource]:
        """Yield every readable document of *category*, skipping unreadable projects."""
        for project in self.list_projects(category):
            try:
                sources = self.list_sources(category, project)
            except OSError as exc:
                logger.warning("Skipping unreadable project %s: %s", project, exc)
                continue
            yield from sources
        if category is Category.ARCHIVE:
            yield from self.list_loose_archives()
