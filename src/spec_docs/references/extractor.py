"""Extraction and normalization of `@reference` tokens.

Supported forms:
- `@#section` for a section of the current document
- `@/path/doc` or `@/path/doc.md` for a whole document
- `@/path/doc.md#section` for a section of another document
"""

from __future__ import annotations

import logging
import re
from typing import Any

from spec_docs.addressing.slugs import split_slug_path, title_to_slug
from spec_docs.types import NormalizedReference

logger = logging.getLogger(__name__)

_TOKEN_CHARS = r"[^\s\]),;:!?]"
_TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
_REPEATED_SLASHES = re.compile(r"/+")


class ReferenceExtractor:
    """Finds `@reference` tokens in markdown and resolves them to document paths."""

    pattern = re.compile(rf"@(?:/{_TOKEN_CHARS}+(?:#{_TOKEN_CHARS}*)?|#{_TOKEN_CHARS}*)")

    def extract_references(self, content: Any) -> list[str]:
        if not isinstance(content, str):
            return []
        seen: dict[str, None] = {}
        for match in self.pattern.finditer(content):
            seen.setdefault(_TRAILING_PUNCTUATION.sub("", match.group(0)), None)
        return list(seen)

    def normalize_references(self, refs: Any, context_path: Any) -> list[NormalizedReference]:
        if not isinstance(refs, list):
            return []
        if not isinstance(context_path, str) or not context_path.strip():
            raise ValueError("Context path is required for reference normalization")

        context = ensure_absolute_path(context_path)
        results: list[NormalizedReference] = []
        for ref in refs:
            if not isinstance(ref, str) or not ref.strip():
                continue
            try:
                results.append(self.normalize_reference(ref, context))
            except ValueError as exc:
                logger.warning(f'Failed to normalize reference "{ref}": {exc}')
        return results

    def normalize_reference(self, ref: str, context_path: str) -> NormalizedReference:
        trimmed = ref.strip()
        if not trimmed.startswith("@"):
            raise ValueError(f"Invalid reference format: {ref} (must start with @)")
        body = trimmed[1:]

        if body.startswith("#"):
            section_slug = slugify_fragment(body[1:]) or None
            return NormalizedReference(
                original_ref=ref,
                resolved_path=f"{context_path}#{section_slug}" if section_slug else context_path,
                document_path=context_path,
                section_slug=section_slug,
            )

        doc_part, _, fragment = body.partition("#")
        section_slug = slugify_fragment(fragment) or None
        document_path = normalize_reference_path(doc_part)
        resolved = f"{document_path}#{section_slug}" if section_slug else document_path
        return NormalizedReference(
            original_ref=ref,
            resolved_path=resolved,
            document_path=document_path,
            section_slug=section_slug,
        )


def ensure_absolute_path(path: str) -> str:
    trimmed = path.strip()
    if not trimmed:
        return "/"
    if not trimmed.startswith("/"):
        trimmed = f"/{trimmed}"
    return _REPEATED_SLASHES.sub("/", trimmed)


def normalize_reference_path(doc_path: str) -> str:
    if not doc_path.strip():
        raise ValueError("Document path cannot be empty")
    normalized = ensure_absolute_path(doc_path)
    return normalized if normalized.endswith(".md") else f"{normalized}.md"


def slugify_fragment(fragment: str) -> str:
    """Slugify each `/` component of a section fragment, keeping the hierarchy."""

    parts = split_slug_path(fragment)
    return "/".join(title_to_slug(part) for part in parts if part.strip())


_default_extractor = ReferenceExtractor()


def extract_references(content: Any) -> list[str]:
    return _default_extractor.extract_references(content)


def normalize_references(refs: Any, context_path: Any) -> list[NormalizedReference]:
    return _default_extractor.normalize_references(refs, context_path)
