"""Parsing of raw document, section and task references into addresses.

Accepted section forms are `slug`, `#slug` and `/doc.md#slug`; the first two
resolve against a context document. Successful parses are memoized in the
active `AddressCache` (see `batch_scope`).
"""

from __future__ import annotations

import logging
from typing import Any

from spec_docs.addressing.cache import AddressCache, get_address_cache
from spec_docs.addressing.errors import (
    AddressingError,
    InvalidAddressError,
    NotATaskError,
    SectionNotFoundError,
)
from spec_docs.addressing.slugs import (
    get_parent_slug,
    normalize_slug_path,
    path_to_namespace,
    path_to_slug,
    validate_slug_path,
)
from spec_docs.provider.markdown import find_heading
from spec_docs.types import CachedDocument, DocumentAddress, Heading, SectionAddress, TaskAddress

logger = logging.getLogger(__name__)

DEFAULT_TASKS_HEADING = "Tasks"


def _active(cache: AddressCache | None) -> AddressCache:
    return cache if cache is not None else get_address_cache()


def normalize_document_path(path: str) -> str:
    """Strip, ensure a leading `/`, collapse `//` and append `.md` if missing.

    Raises `InvalidAddressError` for traversal segments, NUL bytes, directory
    paths, and files with an extension other than `.md`.
    """

    if not isinstance(path, str):
        raise InvalidAddressError(str(path), "Document path must be a string")
    candidate = path.strip()
    if not candidate:
        raise InvalidAddressError(path, "Document path cannot be empty")
    if "\x00" in candidate:
        raise InvalidAddressError(path, "Document path cannot contain NUL bytes")

    segments = [segment for segment in candidate.split("/") if segment]
    if any(segment == ".." for segment in segments):
        raise InvalidAddressError(path, "Path traversal is not allowed")
    segments = [segment for segment in segments if segment != "."]
    if not segments or candidate.endswith("/"):
        raise InvalidAddressError(path, "Document path must name a file")

    name = segments[-1]
    if not name.endswith(".md"):
        if "." in name.lstrip("."):
            raise InvalidAddressError(path, "Document path must end with .md")
        segments[-1] = f"{name}.md"
    if segments[-1] == ".md":
        raise InvalidAddressError(path, "Document name cannot be empty")
    return "/" + "/".join(segments)


def parse_document_address(path: str, *, cache: AddressCache | None = None) -> DocumentAddress:
    active = _active(cache)
    if isinstance(path, str):
        hit = active.get(f"doc:{path}")
        if hit is not None:
            return hit

    normalized = normalize_document_path(path)
    address = active.get_or_create(
        f"doc:{normalized}",
        normalized,
        lambda: DocumentAddress(
            path=normalized,
            slug=path_to_slug(normalized),
            namespace=path_to_namespace(normalized),
            normalized_path=normalized,
            cache_key=normalized,
        ),
    )
    if path != normalized:
        active.get_or_create(f"doc:{path}", normalized, lambda: address)
    return address


def parse_section_address(
    ref: str,
    context_doc: str | None = None,
    *,
    cache: AddressCache | None = None,
) -> SectionAddress:
    if not isinstance(ref, str):
        raise InvalidAddressError(str(ref), "Section reference must be a string")

    active = _active(cache)
    key = f"section:{ref}|{context_doc or ''}"
    hit = active.get(key)
    if hit is not None:
        return hit

    if "#" in ref:
        doc_part, _, raw_slug = ref.partition("#")
        if doc_part.strip():
            document_path = doc_part
        elif context_doc:
            document_path = context_doc
        else:
            raise InvalidAddressError(ref, 'Section reference "#section" requires context document')
    else:
        if not context_doc:
            raise InvalidAddressError(ref, "Section reference requires context document or full path")
        document_path = context_doc
        raw_slug = ref

    slug = normalize_slug_path(raw_slug.lstrip("#"))
    if not slug:
        raise InvalidAddressError(ref, "Section slug cannot be empty")
    checked = validate_slug_path(slug)
    if not checked.success:
        raise InvalidAddressError(ref, checked.error or "Invalid section slug")

    document = parse_document_address(document_path, cache=active)
    return active.get_or_create(
        key,
        document.path,
        lambda: SectionAddress(
            document=document,
            slug=slug,
            full_path=f"{document.path}#{slug}",
            cache_key=key,
        ),
    )


def parse_task_address(
    ref: str,
    context_doc: str | None = None,
    document: CachedDocument | None = None,
    *,
    cache: AddressCache | None = None,
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> TaskAddress:
    """Parse a task reference.

    Without `document` only the syntax is checked. With it, the section must
    exist and sit under the Tasks heading.
    """

    section = parse_section_address(ref, context_doc, cache=cache)

    if document is not None:
        heading = find_heading(document.headings, section.slug)
        if heading is None:
            parent = get_parent_slug(section.slug)
            raise SectionNotFoundError(
                section.slug,
                section.document.path,
                parent_slug=parent,
                available_sections=_recovery_sections(document.headings, parent),
            )
        if not is_task_heading(heading, document.headings, tasks_heading):
            raise NotATaskError(section.slug, section.document.path)

    return TaskAddress(
        document=section.document,
        slug=section.slug,
        full_path=section.full_path,
        cache_key=f"task:{section.cache_key}",
    )


def find_tasks_heading(
    headings: list[Heading],
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> Heading | None:
    wanted = tasks_heading.strip().lower()
    return next(
        (
            heading
            for heading in headings
            if heading.slug == wanted or heading.title.strip().lower() == wanted
        ),
        None,
    )


def is_task_heading(
    heading: Heading,
    headings: list[Heading],
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> bool:
    tasks = find_tasks_heading(headings, tasks_heading)
    if tasks is None or heading.index <= tasks.index or heading.depth <= tasks.depth:
        return False
    for between in headings[tasks.index + 1 : heading.index]:
        if between.depth <= tasks.depth:
            return False
    return True


def is_task_section(
    slug: str,
    document: CachedDocument,
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> bool:
    heading = find_heading(document.headings, slug)
    return heading is not None and is_task_heading(heading, document.headings, tasks_heading)


def invalidate_document(path: str, *, cache: AddressCache | None = None) -> int:
    """Forget cached addresses for a document and all of its sections."""

    try:
        normalized = normalize_document_path(path)
    except InvalidAddressError:
        return 0
    removed = _active(cache).invalidate_document(normalized)
    if removed:
        logger.debug(f"Invalidated {removed} cached addresses for {normalized}")
    return removed


def standardize_tool_params(
    params: dict[str, Any],
    *,
    cache: AddressCache | None = None,
) -> dict[str, Any]:
    """Parse `{document, section?, task?}` tool parameters into addresses."""

    raw_document = params.get("document")
    if raw_document is None or raw_document == "":
        raise AddressingError(
            "Missing required parameter: document",
            "MISSING_PARAMETER",
            {"parameter": "document"},
        )

    try:
        document = parse_document_address(raw_document, cache=cache)
        result: dict[str, Any] = {"document": document}
        if params.get("section"):
            result["section"] = parse_section_address(params["section"], document.path, cache=cache)
        if params.get("task"):
            result["task"] = parse_task_address(params["task"], document.path, cache=cache)
    except AddressingError:
        raise
    except Exception as exc:
        raise AddressingError(
            f"Parameter validation failed: {exc}",
            "PARAMETER_VALIDATION_ERROR",
            {"params": params},
        ) from exc
    return result


def format_document_info(
    document: DocumentAddress,
    metadata_title: str | None = None,
) -> dict[str, str]:
    return {
        "slug": document.slug,
        "title": metadata_title or document.slug,
        "namespace": document.namespace,
    }


def format_section_path(section: SectionAddress) -> str:
    return section.full_path


def format_task_path(task: TaskAddress) -> str:
    return f"{task.full_path} (task)"


def normalize_slug(slug: str) -> str:
    return slug[1:] if slug.startswith("#") else slug


def looks_like_document_path(value: str) -> bool:
    return isinstance(value, str) and "/" in value and value.endswith(".md")


def looks_like_section_reference(value: str) -> bool:
    return isinstance(value, str) and ("#" in value or "/" not in value)


def _recovery_sections(headings: list[Heading], parent_slug: str | None) -> list[str]:
    if parent_slug is not None:
        parent = find_heading(headings, parent_slug)
        if parent is not None:
            children = [h.slug for h in headings if h.parent_index == parent.index]
            if children:
                return children
    return [heading.slug for heading in headings]
