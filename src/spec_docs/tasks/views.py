"""Task lookup, enrichment and response shaping."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from spec_docs.addressing.slugs import get_parent_slug, split_slug_path
from spec_docs.addressing.system import DEFAULT_TASKS_HEADING, find_tasks_heading, format_task_path
from spec_docs.config import ReferenceConfig
from spec_docs.provider.base import DocumentProvider
from spec_docs.references.loader import ReferenceLoader
from spec_docs.tasks.fields import (
    calculate_word_count,
    extract_dependencies,
    extract_task_metadata,
    extract_task_title,
)
from spec_docs.types import (
    CachedDocument,
    Heading,
    TaskAddress,
    TaskHierarchicalContext,
    TaskStatus,
    TaskViewData,
)

AVAILABLE_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


def find_tasks_section(
    document: CachedDocument,
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> Heading | None:
    return find_tasks_heading(document.headings, tasks_heading)


def get_task_headings(document: CachedDocument, tasks_section: Heading) -> list[Heading]:
    """Direct children of the Tasks heading, in document order."""

    tasks: list[Heading] = []
    for heading in document.headings[tasks_section.index + 1 :]:
        if heading.depth <= tasks_section.depth:
            break
        if heading.depth == tasks_section.depth + 1:
            tasks.append(heading)
    return tasks


def get_task_hierarchical_context(slug: str) -> TaskHierarchicalContext | None:
    if "/" not in slug:
        return None
    parts = split_slug_path(slug)
    if len(parts) < 2:
        return None
    return TaskHierarchicalContext(
        full_path=slug,
        parent_path="/".join(parts[:-1]),
        phase=parts[0],
        category=parts[1],
        task_name=parts[-1],
        depth=len(parts),
    )


def is_available(status: str) -> bool:
    return status in AVAILABLE_STATUSES


async def enrich_task_with_references(
    provider: DocumentProvider,
    document_path: str,
    slug: str,
    content: str,
    heading: Heading | None = None,
    task_address: TaskAddress | None = None,
    *,
    config: ReferenceConfig | None = None,
    loader: ReferenceLoader | None = None,
) -> TaskViewData:
    """Build a `TaskViewData` with metadata and loaded references."""

    config = config or ReferenceConfig()
    loader = loader or ReferenceLoader(config)
    metadata = extract_task_metadata(content)
    referenced = await loader.load_references_from_content(
        content,
        document_path,
        provider,
        config.extraction_depth,
    )

    task = TaskViewData(
        slug=slug,
        title=heading.title if heading is not None else extract_task_title(content),
        status=metadata.status,
        content=content,
        link=metadata.link,
        linked_document=metadata.linked_document,
        dependencies=extract_dependencies(content),
        has_references="@/" in content,
        referenced_documents=referenced,
        hierarchical_context=get_task_hierarchical_context(slug),
        word_count=calculate_word_count(content),
    )
    if heading is not None:
        task.depth = heading.depth
        task.parent = get_parent_slug(heading.slug)
    if task_address is not None:
        task.full_path = format_task_path(task_address)
    return task


def format_task_response(
    task: TaskViewData,
    *,
    include_content: bool = False,
    include_word_count: bool = False,
    include_hierarchy: bool = False,
    include_references: bool = True,
) -> dict[str, Any]:
    response: dict[str, Any] = {"slug": task.slug, "title": task.title, "status": task.status}
    if task.link is not None:
        response["link"] = task.link
    if task.linked_document is not None:
        response["linked_document"] = task.linked_document
    if task.dependencies:
        response["dependencies"] = list(task.dependencies)
    if task.has_references:
        response["has_references"] = True
    if task.hierarchical_context is not None:
        response["hierarchical_context"] = asdict(task.hierarchical_context)
    if include_content:
        response["content"] = task.content
    if include_word_count and task.word_count is not None:
        response["word_count"] = task.word_count
    if include_hierarchy:
        for key in ("depth", "parent", "full_path"):
            value = getattr(task, key)
            if value is not None:
                response[key] = value
    if include_references and task.referenced_documents:
        response["referenced_documents"] = [node.to_dict() for node in task.referenced_documents]
    return response


def calculate_task_summary(tasks: list[TaskViewData]) -> dict[str, Any]:
    by_status: dict[str, int] = {}
    with_links = 0
    with_references = 0
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        if task.link is not None or task.linked_document is not None:
            with_links += 1
        if task.referenced_documents:
            with_references += 1
    return {
        "total_tasks": len(tasks),
        "by_status": by_status,
        "with_links": with_links,
        "with_references": with_references,
    }


async def find_next_available_task(
    provider: DocumentProvider,
    document: CachedDocument,
    exclude_slug: str | None = None,
    *,
    config: ReferenceConfig | None = None,
    tasks_heading: str = DEFAULT_TASKS_HEADING,
) -> TaskViewData | None:
    """First pending or in-progress task after `exclude_slug`, in document order."""

    tasks_section = find_tasks_section(document, tasks_heading)
    if tasks_section is None:
        return None

    path = document.metadata.path
    headings = get_task_headings(document, tasks_section)
    start = 0
    if exclude_slug:
        for position, heading in enumerate(headings):
            if heading.slug == exclude_slug:
                start = position + 1
                break

    loader = ReferenceLoader(config)
    for heading in headings[start:]:
        content = await provider.get_section_content(path, heading.slug) or ""
        if not is_available(extract_task_metadata(content).status):
            continue
        return await enrich_task_with_references(
            provider,
            path,
            heading.slug,
            content,
            heading,
            config=config,
            loader=loader,
        )
    return None
