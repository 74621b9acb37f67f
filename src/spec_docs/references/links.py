"""Link parsing, resolution and existence checks."""

from __future__ import annotations

import logging
import re
from typing import Any

from spec_docs.provider.base import DocumentProvider
from spec_docs.provider.markdown import find_heading
from spec_docs.types import LinkCheck, ParsedLink

logger = logging.getLogger(__name__)

_REPEATED_SLASHES = re.compile(r"/+")


def parse_link(text: Any, current_doc_path: str | None = None) -> ParsedLink:
    """Classify a link token as `external`, `within-doc` or `cross-doc`.

    Anything without a leading `@` is external. `@#slug` is within the current
    document; `@/path[#slug]` points at another document.
    """

    if not isinstance(text, str) or not text.strip() or not text.strip().startswith("@"):
        return ParsedLink(type="external", raw=str(text))

    body = text.strip()[1:]
    if body.startswith("#"):
        return ParsedLink(
            type="within-doc",
            raw=text,
            document=current_doc_path,
            section=body[1:] or None,
        )

    document, _, section = body.partition("#")
    return ParsedLink(
        type="cross-doc",
        raw=text,
        document=document or None,
        section=section or None,
    )


def normalize_link_path(path: str) -> str:
    """Ensure a leading `/`, collapse `//` and drop a trailing `/`."""

    normalized = path.strip()
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    normalized = _REPEATED_SLASHES.sub("/", normalized)
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def resolve_link(link: ParsedLink, current_doc_path: str) -> str:
    """Return the absolute `path[#section]` target of a parsed link."""

    if not isinstance(current_doc_path, str) or not current_doc_path.strip():
        raise ValueError("Current document path is required for link resolution")

    if link.type == "external":
        return link.raw
    if link.type == "within-doc":
        current = normalize_link_path(current_doc_path)
        return f"{current}#{link.section}" if link.section else current
    if link.type == "cross-doc":
        if not link.document:
            raise ValueError("Cross-document link missing document path")
        document = _with_extension(normalize_link_path(link.document))
        return f"{document}#{link.section}" if link.section else document
    raise ValueError(f"Unknown link type: {link.type}")


def is_external_link(link_path: str) -> bool:
    return (
        not link_path.startswith("@")
        and not link_path.startswith("/")
        and ("://" in link_path or "www." in link_path)
    )


async def validate_link(link_path: str, provider: DocumentProvider) -> LinkCheck:
    """Check that a resolved `path[#section]` target exists."""

    if not isinstance(link_path, str) or not link_path.strip():
        return LinkCheck(
            valid=False,
            error="Link path cannot be empty",
            suggestion="Provide a valid document path",
        )

    trimmed = link_path.strip()
    if is_external_link(trimmed):
        return LinkCheck(valid=True)

    document_path, _, section = trimmed.partition("#")
    try:
        document = await provider.get_document(document_path)
    except Exception as exc:
        logger.warning(f"Failed to check document {document_path}: {exc}")
        return LinkCheck(
            valid=False,
            document_exists=False,
            error=f"Failed to check document: {exc}",
            suggestion=f"Verify the document path: {document_path}",
        )

    if document is None:
        return LinkCheck(
            valid=False,
            document_exists=False,
            error=f"Document not found: {document_path}",
            suggestion="Check the document path and ensure the file exists",
        )
    if not section:
        return LinkCheck(valid=True, document_exists=True)

    if find_heading(document.headings, section) is None:
        available = [heading.slug for heading in document.headings]
        return LinkCheck(
            valid=False,
            document_exists=True,
            section_exists=False,
            error=f"Section not found: {section}",
            suggestion=(
                f"Available sections: {', '.join(available[:5])}"
                if available
                else "No sections found in document"
            ),
        )
    return LinkCheck(valid=True, document_exists=True, section_exists=True)


async def link_exists(link_path: str, provider: DocumentProvider) -> bool:
    return (await validate_link(link_path, provider)).valid


def _with_extension(path: str) -> str:
    return path if path.endswith(".md") else f"{path}.md"
