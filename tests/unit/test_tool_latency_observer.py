import asyncio

from spec_docs.agent.registry import PREVIEW_CHARS, ToolRegistry
from spec_docs.agent.tools import register_builtin_tools
from spec_docs.provider.memory import InMemoryDocumentProvider
from spec_docs.types import ToolTrace

_TASK_BODY = "- Status: pending\n\n" + "Long description. " * 40

_PLAN = f"""# Plan

## Overview

Context.

## Tasks

### Draft Outline

{_TASK_BODY}
"""


def _observed_registry() -> tuple[ToolRegistry, list[ToolTrace]]:
    registry = ToolRegistry()
    register_builtin_tools(registry, InMemoryDocumentProvider({"/plan.md": _PLAN}))
    observed: list[ToolTrace] = []
    registry.set_observer(observed.append)
    return registry, observed


def test_observer_captures_list_tasks_trace() -> None:
    registry, observed = _observed_registry()

    output = asyncio.run(registry.execute("list_tasks", {"document": "/plan.md"}))

    (trace,) = observed
    assert trace.name == "list_tasks"
    assert trace.input_payload == {"document": "/plan.md"}
    assert trace.output_preview.startswith('{"document": "/plan.md", "tasks": [')
    assert trace.output_preview == output
    assert trace.latency_ms >= 0.0
    assert trace.error_code is None


def test_observer_preview_truncates_long_output() -> None:
    registry, observed = _observed_registry()

    output = asyncio.run(registry.execute("view_task", {"document": "/plan.md", "task": "draft-outline"}))

    (trace,) = observed
    assert len(output) > PREVIEW_CHARS
    assert trace.output_preview == output[:PREVIEW_CHARS]
    assert trace.error_code is None


def test_observer_records_addressing_error_code() -> None:
    registry, observed = _observed_registry()

    asyncio.run(registry.execute("view_task", {"document": "/plan.md", "task": "overview"}))
    registry.set_observer(None)
    asyncio.run(registry.execute("list_tasks", {"document": "/plan.md"}))

    (trace,) = observed
    assert trace.name == "view_task"
    assert trace.error_code == "NOT_A_TASK"
    assert '"NOT_A_TASK"' in trace.output_preview
