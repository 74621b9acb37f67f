"""Document provider contract consumed by the addressing core."""

from __future__ import annotations

from typing import Any, Protocol

from spec_docs.types import CachedDocument, DocumentInfo, InsertMode


class DocumentCacheHandle(Protocol):
    def invalidate_document(self, path: str) -> bool:
        """Drop any parsed state held for `path`."""


class DocumentProvider(Protocol):
    """Minimal storage contract for documents and their sections.

    Paths are normalized document paths (`/api/auth.md`). Section slugs may be
    flat (`login`) or hierarchical (`api/auth/login`).
    """

    cache: DocumentCacheHandle

    async def get_document(self, path: str) -> CachedDocument | None:
        """Return metadata and headings, or None when the document is absent."""

    async def get_document_content(self, path: str) -> str | None:
        """Return the full markdown text of a document."""

    async def get_section_content(self, path: str, slug: str) -> str | None:
        """Return a section including its heading line and nested subsections."""

    async def list_documents(self) -> list[DocumentInfo]:
        """List every document known to the provider."""

    async def update_section(
        self,
        path: str,
        slug: str,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        """Replace the body of a section, keeping its heading."""

    async def insert_section(
        self,
        path: str,
        ref_slug: str,
        mode: InsertMode,
        depth: int | None,
        title: str,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        """Insert a new section relative to `ref_slug`."""
