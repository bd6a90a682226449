"""
Category-specific extraction of the text spans sent to the embedding backend.

Every function here is pure: identical input text always yields identical
chunks and keys.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ..corpus import Category, Document, entry_id

TACIT_BODY_LINES = 20
TACIT_CHAR_CAP = 2000
CONTEXT_MIN_LINE = 15
CONTEXT_MAX_LINES = 25
CONTEXT_CHAR_CAP = 1200
ARCHIVE_MIN_LINE = 10
ARCHIVE_MAX_LINES = 20
ARCHIVE_CHAR_CAP = 1000
BRANCH_MIN_LINE = 20
BRANCH_EDGE_LINES = 15
BRANCH_CHAR_CAP = 2000
ENTRY_CHAR_CAP = 3000

HEADER_DATE = "header"

_TITLE_RE = re.compile(r"\*\*Title:\*\*\s*(.+)")
_TAGS_RE = re.compile(r"\*\*Tags:\*\*\s*(.+)")
_ENTRY_HEADING_RE = re.compile(r"^## (\d{4}-\d{2}-\d{2})")


@dataclass(frozen=True)
class Chunk:
    """An embedding-ready text span and the store key it is written under."""

    namespace: str
    key: str
    text: str
    category: Category


@dataclass(frozen=True)
class EntrySegment:
    """One section of a branch note, split at dated headings."""

    index: int
    date: str
    text: str


def _nonempty_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def _substantive_lines(text: str, min_length: int) -> list[str]:
    return [
        line
        for line in _nonempty_lines(text)
        if not line.startswith("#")
        and not line.startswith("---")
        and len(line) > min_length
    ]


def has_body(text: str) -> bool:
    """Return True if *text* has a line that is not a heading or separator."""
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and not stripped.startswith("---"):
            return True
    return False


def split_entries(text: str) -> list[EntrySegment]:
    """
    Split a branch note into positional segments.

    Grammar: a line matching ``## YYYY-MM-DD`` starts a new segment; all
    content before the first such line is segment 0 (the header). Segment 0
    is always returned, possibly with empty text, so the first dated entry
    is always index 1.
    """
    segments: list[EntrySegment] = []
    current_date = HEADER_DATE
    current_lines: list[str] = []

    for line in text.split("\n"):
        match = _ENTRY_HEADING_RE.match(line)
        if match:
            segments.append(
                EntrySegment(
                    index=len(segments),
                    date=current_date,
                    text="\n".join(current_lines).strip(),
                )
            )
            current_date = match.group(1)
            current_lines = [line]
        else:
            current_lines.append(line)

    segments.append(
        EntrySegment(
            index=len(segments),
            date=current_date,
            text="\n".join(current_lines).strip(),
        )
    )
    return segments


def tacit_text(document: Document) -> str:
    title_match = _TITLE_RE.search(document.raw_text)
    title = title_match.group(1) if title_match else Path(document.source_path).name
    tags_match = _TAGS_RE.search(document.raw_text)
    tags = tags_match.group(1) if tags_match else ""
    lines = _nonempty_lines(document.raw_text)
    body = " ".join(lines[:TACIT_BODY_LINES])[:TACIT_CHAR_CAP]
    return f"{title} {tags} {body}"


def context_text(document: Document) -> str:
    lines = _substantive_lines(document.raw_text, CONTEXT_MIN_LINE)[:CONTEXT_MAX_LINES]
    body = " ".join(lines)[:CONTEXT_CHAR_CAP]
    return f"Context: {document.id} Project: {document.project} {body}"


def archive_text(document: Document) -> str:
    lines = _substantive_lines(document.raw_text, ARCHIVE_MIN_LINE)[:ARCHIVE_MAX_LINES]
    body = " ".join(lines)[:ARCHIVE_CHAR_CAP]
    if document.project:
        file_name = Path(document.source_path).name
        return f"Archive: {document.project} File: {file_name} {body}"
    return f"Archive: {document.id} {body}"


def branch_overall_text(document: Document) -> str:
    lines = _substantive_lines(document.raw_text, BRANCH_MIN_LINE)
    # Beginning holds the intent of the branch, the end its latest state.
    edges = lines[:BRANCH_EDGE_LINES] + lines[-BRANCH_EDGE_LINES:]
    body = " ".join(edges)[:BRANCH_CHAR_CAP]
    return f"Branch: {document.id} Project: {document.project} {body}"


def branch_entry_chunks(document: Document) -> list[Chunk]:
    namespace = document.namespace
    chunks: list[Chunk] = []
    for segment in split_entries(document.raw_text):
        if not has_body(segment.text):
            continue
        text = (
            f"Branch: {document.id} Project: {document.project} "
            f"Date: {segment.date} {segment.text[:ENTRY_CHAR_CAP]}"
        )
        chunks.append(
            Chunk(
                namespace=namespace,
                key=entry_id(document.id, segment.index),
                text=text,
                category=Category.BRANCH_ENTRY,
            )
        )
    return chunks


def chunk_document(document: Document) -> list[Chunk]:
    """
    Return the chunks for *document* in store order.

    Branch notes yield the overall chunk first, then one chunk per
    non-empty entry segment.
    """
    category = document.category
    namespace = document.namespace

    if category is Category.TACIT:
        return [Chunk(namespace, document.id, tacit_text(document), category)]
    if category is Category.CONTEXT:
        return [Chunk(namespace, document.id, context_text(document), category)]
    if category is Category.ARCHIVE:
        return [Chunk(namespace, document.id, archive_text(document), category)]
    if category is Category.BRANCH_OVERALL:
        overall = Chunk(namespace, document.id, branch_overall_text(document), category)
        return [overall, *branch_entry_chunks(document)]
    raise ValueError(f"Cannot chunk documents of category {category.value!r}")
