"""Recursive, bounded loading of referenced content.

One `load_references` call shares a single expansion state across every
branch: the visited set (`<document_path>#<section>`), the node counter and
the start time. Guards truncate the tree and return what was loaded so far.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from spec_docs.addressing.slugs import path_to_namespace
from spec_docs.config import ReferenceConfig
from spec_docs.provider.base import DocumentProvider
from spec_docs.provider.markdown import find_heading
from spec_docs.references.extractor import ReferenceExtractor
from spec_docs.types import HierarchicalContent, NormalizedReference

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _LoadState:
    max_depth: int
    started_at: float
    visited: set[str] = field(default_factory=set)
    nodes: int = 0
    truncated: bool = False


def visit_key(ref: NormalizedReference) -> str:
    return f"{ref.document_path}#{ref.section_slug or ''}"


class ReferenceLoader:
    def __init__(
        self,
        config: ReferenceConfig | None = None,
        *,
        extractor: ReferenceExtractor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ReferenceConfig()
        self.extractor = extractor or ReferenceExtractor()
        self._clock = clock

    async def load_references(
        self,
        refs: list[NormalizedReference],
        provider: DocumentProvider,
        max_depth: int = 3,
    ) -> list[HierarchicalContent]:
        """Expand `refs` into content trees whose nodes start at depth 1."""

        if not isinstance(refs, list):
            return []
        if max_depth < 0:
            raise ValueError("max_depth must be a non-negative number")

        state = _LoadState(max_depth=max_depth, started_at=self._clock())
        return await self._expand(refs, provider, 1, state)

    async def load_references_from_content(
        self,
        content: str,
        context_path: str,
        provider: DocumentProvider,
        max_depth: int = 3,
    ) -> list[HierarchicalContent]:
        refs = self.extractor.extract_references(content)
        normalized = self.extractor.normalize_references(refs, context_path)
        return await self.load_references(normalized, provider, max_depth)

    async def _expand(
        self,
        refs: list[NormalizedReference],
        provider: DocumentProvider,
        depth: int,
        state: _LoadState,
    ) -> list[HierarchicalContent]:
        if depth > state.max_depth:
            return []

        results: list[HierarchicalContent] = []
        for ref in refs:
            if not self._within_limits(state):
                break

            key = visit_key(ref)
            if key in state.visited:
                logger.warning(f"Cycle detected for reference {ref.original_ref} ({key})")
                continue
            state.visited.add(key)

            try:
                node = await self._load_single(ref, provider, depth)
            except Exception as exc:
                logger.warning(f'Failed to load reference "{ref.original_ref}": {exc}')
                continue
            if node is None:
                continue

            state.nodes += 1
            if depth < state.max_depth:
                nested = self.extractor.normalize_references(
                    self.extractor.extract_references(node.content),
                    ref.document_path,
                )
                node.children = await self._expand(nested, provider, depth + 1, state)
            results.append(node)
        return results

    async def _load_single(
        self,
        ref: NormalizedReference,
        provider: DocumentProvider,
        depth: int,
    ) -> HierarchicalContent | None:
        document = await provider.get_document(ref.document_path)
        if document is None:
            logger.warning(f"Document not found: {ref.document_path}")
            return None

        if ref.section_slug is not None:
            content = await provider.get_section_content(ref.document_path, ref.section_slug)
            if not content:
                logger.warning(f'Section "{ref.section_slug}" not found in {ref.document_path}')
                return None
            heading = find_heading(document.headings, ref.section_slug)
            title = heading.title if heading is not None else f"Section: {ref.section_slug}"
        else:
            content = await provider.get_document_content(ref.document_path)
            if not content:
                return None
            title = document.metadata.title

        return HierarchicalContent(
            path=ref.document_path,
            title=title,
            content=content,
            depth=depth,
            namespace=path_to_namespace(ref.document_path),
            section_slug=ref.section_slug,
        )

    def _within_limits(self, state: _LoadState) -> bool:
        if state.truncated:
            return False
        if state.nodes >= self.config.max_total_nodes:
            logger.warning(
                f"Total node limit ({self.config.max_total_nodes}) reached, truncating reference tree"
            )
            state.truncated = True
            return False
        elapsed = self._clock() - state.started_at
        if elapsed > self.config.timeout_seconds:
            logger.warning(
                f"Reference loading exceeded {self.config.timeout_seconds}s, truncating reference tree"
            )
            state.truncated = True
            return False
        return True


def flatten_hierarchy(tree: list[HierarchicalContent]) -> list[str]:
    paths: list[str] = []

    def _collect(items: list[HierarchicalContent]) -> None:
        for item in items:
            paths.append(item.path)
            _collect(item.children)

    _collect(tree)
    return paths


def get_hierarchy_stats(tree: list[HierarchicalContent]) -> dict[str, object]:
    total = 0
    deepest = 0
    namespaces: set[str] = set()

    def _analyze(items: list[HierarchicalContent]) -> None:
        nonlocal total, deepest
        for item in items:
            total += 1
            deepest = max(deepest, item.depth)
            namespaces.add(item.namespace)
            _analyze(item.children)

    _analyze(tree)
    return {"total_documents": total, "max_depth": deepest, "namespaces": sorted(namespaces)}
