"""Task CRUD and status operations.

Tasks are the direct subsections of a document's "Tasks" heading. Status
transitions are not enforced: any status string is recorded as given.
Errors that already carry an addressing code propagate unchanged; anything
else is wrapped in the operation's own error type.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any

from spec_docs.addressing.cache import AddressCache
from spec_docs.addressing.errors import (
    AddressingError,
    DocumentNotFoundError,
    TaskCompleteError,
    TaskCreateError,
    TaskEditError,
    TaskListError,
    TaskNotFoundError,
)
from spec_docs.addressing.slugs import title_to_slug
from spec_docs.addressing.system import (
    invalidate_document,
    parse_document_address,
    parse_section_address,
    parse_task_address,
)
from spec_docs.config import CoreConfig
from spec_docs.provider.base import DocumentProvider
from spec_docs.provider.markdown import find_heading
from spec_docs.references.loader import ReferenceLoader
from spec_docs.tasks.fields import (
    extract_dependencies,
    extract_linked_document,
    extract_task_link,
    extract_task_status,
    update_task_status,
)
from spec_docs.tasks.views import (
    find_tasks_section,
    get_task_headings,
    get_task_hierarchical_context,
    is_available,
)
from spec_docs.types import TaskStatus, TaskViewData

logger = logging.getLogger(__name__)


def _invalidate(provider: DocumentProvider, path: str, cache: AddressCache | None) -> None:
    provider.cache.invalidate_document(path)
    invalidate_document(path, cache=cache)


async def ensure_tasks_section_operation(
    provider: DocumentProvider,
    doc_path: str,
    *,
    config: CoreConfig | None = None,
    cache: AddressCache | None = None,
) -> bool:
    """Create the Tasks section under the first H1 if it is missing.

    Returns True when the section was created.
    """

    config = config or CoreConfig()
    path = parse_document_address(doc_path, cache=cache).path
    document = await provider.get_document(path)
    if document is None:
        raise DocumentNotFoundError(path)
    if find_tasks_section(document, config.tasks.tasks_heading) is not None:
        return False

    title_heading = next((heading for heading in document.headings if heading.depth == 1), None)
    if title_heading is None:
        raise AddressingError(
            "Cannot auto-create Tasks section: document has no title heading (H1)",
            "NO_TITLE_HEADING",
            {"document": path},
        )

    await provider.insert_section(
        path,
        title_heading.slug,
        "append_child",
        None,
        config.tasks.tasks_heading,
        config.tasks.tasks_section_body,
    )
    _invalidate(provider, path, cache)
    logger.info(f"Created {config.tasks.tasks_heading} section in {path}")
    return True


async def create_task_operation(
    provider: DocumentProvider,
    doc_path: str,
    title: str,
    content: str,
    after_slug: str | None = None,
    *,
    config: CoreConfig | None = None,
    cache: AddressCache | None = None,
) -> dict[str, Any]:
    config = config or CoreConfig()
    try:
        path = parse_document_address(doc_path, cache=cache).path
        slug = title_to_slug(title)
        await ensure_tasks_section_operation(provider, path, config=config, cache=cache)

        if after_slug:
            ref = parse_section_address(after_slug, path, cache=cache).slug
            mode = "insert_after"
        else:
            ref = title_to_slug(config.tasks.tasks_heading)
            mode = "append_child"
        await provider.insert_section(path, ref, mode, None, title.strip(), content)
        _invalidate(provider, path, cache)
    except AddressingError:
        raise
    except Exception as exc:
        raise TaskCreateError(
            f"Failed to create task: {exc}",
            {"document": doc_path, "title": title},
        ) from exc

    result: dict[str, Any] = {"slug": slug, "title": title.strip()}
    context = get_task_hierarchical_context(slug)
    if context is not None:
        result["hierarchical_context"] = asdict(context)
    return result


async def edit_task_operation(
    provider: DocumentProvider,
    doc_path: str,
    slug: str,
    content: str,
    *,
    config: CoreConfig | None = None,
    cache: AddressCache | None = None,
) -> None:
    """Replace a task body wholesale; there is no merge."""

    config = config or CoreConfig()
    try:
        path = parse_document_address(doc_path, cache=cache).path
        document = await provider.get_document(path)
        if document is None:
            raise DocumentNotFoundError(path)
        task = parse_task_address(
            slug,
            path,
            document,
            cache=cache,
            tasks_heading=config.tasks.tasks_heading,
        )
        await provider.update_section(path, task.slug, content)
        _invalidate(provider, path, cache)
    except AddressingError:
        raise
    except Exception as exc:
        raise TaskEditError(
            f"Failed to edit task: {exc}",
            {"document": doc_path, "task": slug},
        ) from exc


async def list_tasks_operation(
    provider: DocumentProvider,
    doc_path: str,
    status_filter: str | None = None,
    load_references: bool = False,
    *,
    config: CoreConfig | None = None,
    cache: AddressCache | None = None,
) -> dict[str, Any]:
    """List tasks in document order.

    The result always has `tasks`; `next_task` and `hierarchical_summary`
    are present only when there is something to report.
    """

    config = config or CoreConfig()
    path = parse_document_address(doc_path, cache=cache).path
    document = await provider.get_document(path)
    if document is None:
        raise DocumentNotFoundError(path)

    tasks_section = find_tasks_section(document, config.tasks.tasks_heading)
    if tasks_section is None:
        return {"tasks": []}

    loader = ReferenceLoader(config.references)
    tasks: list[TaskViewData] = []
    try:
        for heading in get_task_headings(document, tasks_section):
            content = await provider.get_section_content(path, heading.slug) or ""
            has_references = "@/" in content
            referenced = []
            if load_references and has_references:
                referenced = await loader.load_references_from_content(
                    content,
                    path,
                    provider,
                    config.references.extraction_depth,
                )
            tasks.append(
                TaskViewData(
                    slug=heading.slug,
                    title=heading.title,
                    status=extract_task_status(content),
                    content=content,
                    link=extract_task_link(content) or None,
                    linked_document=extract_linked_document(content),
                    dependencies=extract_dependencies(content),
                    has_references=has_references,
                    referenced_documents=referenced,
                    hierarchical_context=get_task_hierarchical_context(heading.slug),
                    depth=heading.depth,
                )
            )
    except Exception as exc:
        try:
            _invalidate(provider, path, cache)
        except Exception as cleanup_error:
            logger.warning(f"Cache cleanup failed after task loading error: {cleanup_error}")
        if isinstance(exc, AddressingError):
            raise
        raise TaskListError(f"Failed to list tasks: {exc}", {"document": path}) from exc

    if status_filter:
        tasks = [task for task in tasks if task.status == status_filter]

    result: dict[str, Any] = {"tasks": tasks}
    next_task = find_next_task(tasks)
    if next_task is not None:
        result["next_task"] = next_task
    summary = generate_hierarchical_summary(tasks)
    if summary is not None:
        result["hierarchical_summary"] = summary
    return result


async def complete_task_operation(
    provider: DocumentProvider,
    doc_path: str,
    slug: str,
    note: str,
    today: date | None = None,
    *,
    config: CoreConfig | None = None,
    cache: AddressCache | None = None,
) -> dict[str, Any]:
    """Mark a task completed and append a dated note.

    `slug` accepts any task reference form; the result carries the heading
    slug it resolved to. Completing twice appends a second note block.
    """

    config = config or CoreConfig()
    try:
        path = parse_document_address(doc_path, cache=cache).path
        task = parse_task_address(slug, path, cache=cache)
        current = await provider.get_section_content(path, task.slug)
        if not current:
            raise TaskNotFoundError(task.slug, path)

        document = await provider.get_document(path)
        if document is None:
            raise DocumentNotFoundError(path)
        parse_task_address(
            slug,
            path,
            document,
            cache=cache,
            tasks_heading=config.tasks.tasks_heading,
        )
        heading = find_heading(document.headings, task.slug)

        completed_date = (today or date.today()).isoformat()
        updated = update_task_status(current, TaskStatus.COMPLETED.value, note, completed_date)
        await provider.update_section(path, task.slug, updated)
        _invalidate(provider, path, cache)
    except AddressingError:
        raise
    except Exception as exc:
        raise TaskCompleteError(
            f"Failed to complete task: {exc}",
            {"document": doc_path, "task": slug},
        ) from exc

    return {
        "slug": heading.slug if heading is not None else task.slug,
        "title": heading.title if heading is not None else task.slug,
        "note": note,
        "completed_date": completed_date,
    }


def find_next_task(tasks: list[TaskViewData]) -> TaskViewData | None:
    return next((task for task in tasks if is_available(task.status)), None)


def generate_hierarchical_summary(tasks: list[TaskViewData]) -> dict[str, Any] | None:
    """Counts by phase and category plus a sorted critical path.

    Only tasks with hierarchical slugs participate; None when there are none.
    """

    hierarchical = [task for task in tasks if task.hierarchical_context is not None]
    if not hierarchical:
        return None

    by_phase: dict[str, dict[str, int]] = {}
    by_category: dict[str, dict[str, int]] = {}
    for task in hierarchical:
        context = task.hierarchical_context
        phase = by_phase.setdefault(
            context.phase,
            {"total": 0, "pending": 0, "in_progress": 0, "completed": 0},
        )
        category = by_category.setdefault(context.category, {"total": 0, "pending": 0})
        phase["total"] += 1
        category["total"] += 1

        status = TaskStatus.parse(task.status)
        if status is TaskStatus.PENDING:
            phase["pending"] += 1
            category["pending"] += 1
        elif status is TaskStatus.IN_PROGRESS:
            phase["in_progress"] += 1
            category["in_progress"] = category.get("in_progress", 0) + 1
        elif status is TaskStatus.COMPLETED:
            phase["completed"] += 1
            category["completed"] = category.get("completed", 0) + 1

    critical_path = [
        task.slug
        for task in sorted(
            hierarchical,
            key=lambda task: (
                task.hierarchical_context.phase,
                task.hierarchical_context.category,
                task.hierarchical_context.task_name,
            ),
        )
    ]
    return {"by_phase": by_phase, "by_category": by_category, "critical_path": critical_path}
