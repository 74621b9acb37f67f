"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

InsertMode = Literal["insert_before", "insert_after", "append_child"]
LinkType = Literal["cross-doc", "within-doc", "external", "malformed"]


class TaskStatus(StrEnum):
    """Recognized task states.

    Status text in documents is free-form; `parse` keeps unknown values as
    plain strings so they survive a read/write cycle unchanged.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    @classmethod
    def parse(cls, value: str) -> TaskStatus | str:
        try:
            return cls(value.strip())
        except ValueError:
            return value.strip()


@dataclass(slots=True, frozen=True)
class DocumentAddress:
    """A validated, normalized document identifier."""

    path: str
    slug: str
    namespace: str
    normalized_path: str
    cache_key: str


@dataclass(slots=True, frozen=True)
class SectionAddress:
    """A section inside a document, possibly hierarchical (`parent/child`)."""

    document: DocumentAddress
    slug: str
    full_path: str
    cache_key: str

    @property
    def depth(self) -> int:
        return len(self.slug.split("/"))


@dataclass(slots=True, frozen=True)
class TaskAddress:
    document: DocumentAddress
    slug: str
    full_path: str
    cache_key: str
    is_task: bool = True


@dataclass(slots=True)
class HierarchicalSlug:
    full: str
    parts: list[str]
    depth: int
    parent: str | None = None


@dataclass(slots=True)
class SlugPathOperation:
    """Outcome of a slug computation that reports errors as data."""

    success: bool
    result: str | None = None
    error: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class NormalizedReference:
    """An `@reference` resolved against its context document."""

    original_ref: str
    resolved_path: str
    document_path: str
    section_slug: str | None = None


@dataclass(slots=True)
class HierarchicalContent:
    """One node of a loaded reference tree."""

    path: str
    title: str
    content: str
    depth: int
    namespace: str
    children: list[HierarchicalContent] = field(default_factory=list)
    section_slug: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "path": self.path,
            "title": self.title,
            "content": self.content,
            "depth": self.depth,
            "namespace": self.namespace,
            "children": [child.to_dict() for child in self.children],
        }
        if self.section_slug is not None:
            payload["section"] = self.section_slug
        return payload


@dataclass(slots=True, frozen=True)
class Heading:
    index: int
    depth: int
    title: str
    slug: str
    parent_index: int | None = None


@dataclass(slots=True)
class DocumentMetadata:
    path: str
    title: str
    last_modified: datetime
    content_hash: str
    word_count: int


@dataclass(slots=True)
class CachedDocument:
    """Parsed view of a document: metadata plus its heading outline."""

    metadata: DocumentMetadata
    headings: list[Heading]


@dataclass(slots=True)
class DocumentInfo:
    path: str
    title: str
    last_modified: datetime
    heading_count: int
    word_count: int


@dataclass(slots=True)
class TaskHierarchicalContext:
    full_path: str
    parent_path: str
    phase: str
    category: str
    task_name: str
    depth: int


@dataclass(slots=True)
class TaskViewData:
    """Task data extracted from a task section, optionally enriched."""

    slug: str
    title: str
    status: str
    content: str = ""
    link: str | None = None
    linked_document: str | None = None
    dependencies: list[str] = field(default_factory=list)
    has_references: bool = False
    referenced_documents: list[HierarchicalContent] = field(default_factory=list)
    hierarchical_context: TaskHierarchicalContext | None = None
    word_count: int | None = None
    depth: int | None = None
    parent: str | None = None
    full_path: str | None = None


@dataclass(slots=True)
class ParsedLink:
    type: LinkType
    raw: str
    document: str | None = None
    section: str | None = None


@dataclass(slots=True)
class LinkCheck:
    """Existence check for a resolved link target."""

    valid: bool
    error: str | None = None
    suggestion: str | None = None
    document_exists: bool | None = None
    section_exists: bool | None = None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
    error_code: str | None = None
