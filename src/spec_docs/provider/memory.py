"""In-memory document provider."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from spec_docs.addressing.errors import DocumentNotFoundError, SectionNotFoundError
from spec_docs.addressing.slugs import get_parent_slug, path_to_slug
from spec_docs.provider.markdown import (
    find_heading,
    insert_relative,
    list_headings,
    read_section,
    replace_section_body,
    word_count,
)
from spec_docs.types import CachedDocument, DocumentInfo, DocumentMetadata, Heading, InsertMode

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentCache:
    """Parsed headings and metadata keyed by document path."""

    def __init__(self) -> None:
        self._documents: dict[str, CachedDocument] = {}

    def get(self, path: str) -> CachedDocument | None:
        return self._documents.get(path)

    def put(self, path: str, document: CachedDocument) -> None:
        self._documents[path] = document

    def invalidate_document(self, path: str) -> bool:
        removed = self._documents.pop(path, None) is not None
        if removed:
            logger.debug(f"Invalidated cached document {path}")
        return removed

    def clear(self) -> None:
        self._documents.clear()


class InMemoryDocumentProvider:
    """Deterministic provider over markdown strings, used for tests and local prototyping."""

    def __init__(
        self,
        documents: dict[str, str] | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._content: dict[str, str] = {}
        self._modified: dict[str, datetime] = {}
        self.cache = DocumentCache()
        for path, markdown in (documents or {}).items():
            self.put_document(path, markdown)

    def put_document(self, path: str, markdown: str) -> None:
        self._content[path] = markdown
        self._modified[path] = self._clock()
        self.cache.invalidate_document(path)

    def raw(self, path: str) -> str | None:
        return self._content.get(path)

    async def get_document(self, path: str) -> CachedDocument | None:
        return self._load(path)

    async def get_document_content(self, path: str) -> str | None:
        return self._content.get(path)

    async def get_section_content(self, path: str, slug: str) -> str | None:
        document = self._load(path)
        if document is None:
            return None
        heading = find_heading(document.headings, slug)
        if heading is None:
            return None
        return read_section(self._content[path], heading)

    async def list_documents(self) -> list[DocumentInfo]:
        infos: list[DocumentInfo] = []
        for path in sorted(self._content):
            document = self._load(path)
            if document is None:
                continue
            infos.append(
                DocumentInfo(
                    path=path,
                    title=document.metadata.title,
                    last_modified=document.metadata.last_modified,
                    heading_count=len(document.headings),
                    word_count=document.metadata.word_count,
                )
            )
        return infos

    async def update_section(
        self,
        path: str,
        slug: str,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        heading = self._require_heading(path, slug)
        self._write(path, replace_section_body(self._content[path], heading, content))

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
        heading = self._require_heading(path, ref_slug)
        self._write(
            path,
            insert_relative(self._content[path], heading, mode, depth, title, content),
        )

    def _require_heading(self, path: str, slug: str) -> Heading:
        document = self._load(path)
        if document is None:
            raise DocumentNotFoundError(path)
        heading = find_heading(document.headings, slug)
        if heading is None:
            raise SectionNotFoundError(
                slug,
                path,
                parent_slug=get_parent_slug(slug),
                available_sections=[item.slug for item in document.headings],
            )
        return heading

    def _write(self, path: str, markdown: str) -> None:
        self._content[path] = markdown
        self._modified[path] = self._clock()
        self.cache.invalidate_document(path)

    def _load(self, path: str) -> CachedDocument | None:
        cached = self.cache.get(path)
        if cached is not None:
            return cached
        markdown = self._content.get(path)
        if markdown is None:
            return None

        headings = list_headings(markdown)
        title = next((h.title for h in headings if h.depth == 1), None) or path_to_slug(path)
        document = CachedDocument(
            metadata=DocumentMetadata(
                path=path,
                title=title,
                last_modified=self._modified[path],
                content_hash=hashlib.sha256(markdown.encode("utf-8")).hexdigest(),
                word_count=word_count(markdown),
            ),
            headings=headings,
        )
        self.cache.put(path, document)
        return document
