"""Built-in document and task tools for agent runtimes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from spec_docs.addressing.errors import DocumentNotFoundError, SectionNotFoundError
from spec_docs.addressing.system import parse_task_address, standardize_tool_params
from spec_docs.agent.registry import ToolRegistry, ToolSpec
from spec_docs.config import CoreConfig
from spec_docs.provider.base import DocumentProvider
from spec_docs.provider.markdown import find_heading
from spec_docs.references.loader import ReferenceLoader, get_hierarchy_stats
from spec_docs.references.validation import validate_document_links, validate_system_links
from spec_docs.tasks.operations import (
    complete_task_operation,
    create_task_operation,
    edit_task_operation,
    list_tasks_operation,
)
from spec_docs.tasks.views import (
    enrich_task_with_references,
    find_next_available_task,
    format_task_response,
)


class ListTasksInput(BaseModel):
    document: str = Field(min_length=1)
    status: str | None = None
    load_references: bool = False


class CreateTaskInput(BaseModel):
    document: str = Field(min_length=1)
    title: str = Field(min_length=1)
    content: str = ""
    after: str | None = None


class EditTaskInput(BaseModel):
    document: str = Field(min_length=1)
    task: str = Field(min_length=1)
    content: str


class CompleteTaskInput(BaseModel):
    document: str = Field(min_length=1)
    task: str = Field(min_length=1)
    note: str = Field(min_length=1)


class ViewTaskInput(BaseModel):
    document: str = Field(min_length=1)
    task: str = Field(min_length=1)


class ValidateLinksInput(BaseModel):
    document: str | None = None
    path_filter: str | None = None


class LoadReferencesInput(BaseModel):
    document: str = Field(min_length=1)
    section: str | None = None
    max_depth: int | None = Field(default=None, ge=0, le=5)


def register_builtin_tools(
    registry: ToolRegistry,
    provider: DocumentProvider,
    config: CoreConfig | None = None,
) -> None:
    """Register the default document tool set.

    Tools:
    - `list_tasks`: tasks under the Tasks heading, with the next available task.
    - `create_task` / `edit_task` / `complete_task`: task mutations.
    - `view_task`: one task enriched with its loaded references.
    - `validate_links`: link health for a document, or the whole corpus.
    - `load_references`: the reference tree of a document or section.

    Mutating tools carry the `write` tag so runtimes can export a read-only
    set with `ToolRegistry.as_langchain_tools(include_writes=False)`.
    """

    config = config or CoreConfig()

    async def _list_tasks(input_data: ListTasksInput) -> dict[str, Any]:
        result = await list_tasks_operation(
            provider,
            input_data.document,
            input_data.status,
            input_data.load_references,
            config=config,
        )
        payload: dict[str, Any] = {
            "document": input_data.document,
            "tasks": [
                format_task_response(task, include_references=input_data.load_references)
                for task in result["tasks"]
            ],
        }
        if "next_task" in result:
            next_task = result["next_task"]
            payload["next_task"] = {"slug": next_task.slug, "title": next_task.title}
            if next_task.link:
                payload["next_task"]["link"] = next_task.link
        if "hierarchical_summary" in result:
            payload["hierarchical_summary"] = result["hierarchical_summary"]
        return payload

    async def _create_task(input_data: CreateTaskInput) -> dict[str, Any]:
        created = await create_task_operation(
            provider,
            input_data.document,
            input_data.title,
            input_data.content,
            input_data.after,
            config=config,
        )
        return {"created": created, "document": input_data.document}

    async def _edit_task(input_data: EditTaskInput) -> dict[str, Any]:
        await edit_task_operation(
            provider,
            input_data.document,
            input_data.task,
            input_data.content,
            config=config,
        )
        return {"updated": input_data.task, "document": input_data.document}

    async def _complete_task(input_data: CompleteTaskInput) -> dict[str, Any]:
        completed = await complete_task_operation(
            provider,
            input_data.document,
            input_data.task,
            input_data.note,
            config=config,
        )
        payload: dict[str, Any] = {"completed": completed}
        document = await provider.get_document(_document_path(input_data.document))
        if document is not None:
            upcoming = await find_next_available_task(
                provider,
                document,
                completed["slug"],
                config=config.references,
                tasks_heading=config.tasks.tasks_heading,
            )
            if upcoming is not None:
                payload["next_task"] = format_task_response(upcoming)
        return payload

    async def _view_task(input_data: ViewTaskInput) -> dict[str, Any]:
        addresses = standardize_tool_params(
            {"document": input_data.document, "task": input_data.task}
        )
        path = addresses["document"].path
        document = await provider.get_document(path)
        if document is None:
            raise DocumentNotFoundError(path)
        task = parse_task_address(
            input_data.task,
            path,
            document,
            tasks_heading=config.tasks.tasks_heading,
        )
        content = await provider.get_section_content(path, task.slug)
        if not content:
            raise SectionNotFoundError(task.slug, path)
        view = await enrich_task_with_references(
            provider,
            path,
            task.slug,
            content,
            find_heading(document.headings, task.slug),
            task,
            config=config.references,
        )
        return {
            "document": path,
            "task": format_task_response(
                view,
                include_content=True,
                include_word_count=True,
                include_hierarchy=True,
            ),
        }

    async def _validate_links(input_data: ValidateLinksInput) -> dict[str, Any]:
        if input_data.document:
            report = await validate_document_links(_document_path(input_data.document), provider)
        else:
            report = await validate_system_links(provider, input_data.path_filter)
        return report.model_dump()

    async def _load_references(input_data: LoadReferencesInput) -> dict[str, Any]:
        addresses = standardize_tool_params(
            {"document": input_data.document, "section": input_data.section}
        )
        path = addresses["document"].path
        if "section" in addresses:
            content = await provider.get_section_content(path, addresses["section"].slug)
            if content is None:
                raise SectionNotFoundError(addresses["section"].slug, path)
        else:
            content = await provider.get_document_content(path)
            if content is None:
                raise DocumentNotFoundError(path)

        depth = (
            input_data.max_depth
            if input_data.max_depth is not None
            else config.references.extraction_depth
        )
        tree = await ReferenceLoader(config.references).load_references_from_content(
            content,
            path,
            provider,
            depth,
        )
        return {
            "document": path,
            "references": [node.to_dict() for node in tree],
            "stats": get_hierarchy_stats(tree),
        }

    registry.register(
        ToolSpec(
            name="list_tasks",
            description="List tasks in a document with status, next task and phase summary.",
            args_schema=ListTasksInput,
            handler=_list_tasks,
            tags=["tasks"],
        )
    )
    registry.register(
        ToolSpec(
            name="create_task",
            description="Create a task under the document's Tasks heading.",
            args_schema=CreateTaskInput,
            handler=_create_task,
            tags=["tasks", "write"],
        )
    )
    registry.register(
        ToolSpec(
            name="edit_task",
            description="Replace the content of an existing task.",
            args_schema=EditTaskInput,
            handler=_edit_task,
            tags=["tasks", "write"],
        )
    )
    registry.register(
        ToolSpec(
            name="complete_task",
            description="Mark a task completed with a note and show the next available task.",
            args_schema=CompleteTaskInput,
            handler=_complete_task,
            tags=["tasks", "write"],
        )
    )
    registry.register(
        ToolSpec(
            name="view_task",
            description="Show one task with its content and loaded @references.",
            args_schema=ViewTaskInput,
            handler=_view_task,
            tags=["tasks", "references"],
        )
    )
    registry.register(
        ToolSpec(
            name="validate_links",
            description="Report broken @references for a document or the whole corpus.",
            args_schema=ValidateLinksInput,
            handler=_validate_links,
            tags=["links"],
        )
    )
    registry.register(
        ToolSpec(
            name="load_references",
            description="Load the @reference tree of a document or section.",
            args_schema=LoadReferencesInput,
            handler=_load_references,
            tags=["references"],
        )
    )


def _document_path(raw: str) -> str:
    return standardize_tool_params({"document": raw})["document"].path
