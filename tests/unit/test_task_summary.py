from spec_docs.tasks.operations import find_next_task, generate_hierarchical_summary
from spec_docs.tasks.views import format_task_response, get_task_hierarchical_context
from spec_docs.types import TaskViewData


def _task(slug: str, status: str) -> TaskViewData:
    return TaskViewData(
        slug=slug,
        title=slug,
        status=status,
        hierarchical_context=get_task_hierarchical_context(slug),
    )


def test_hierarchical_summary_groups_by_phase_and_category() -> None:
    tasks = [
        _task("phase-1/setup/env", "pending"),
        _task("phase-1/setup/db", "completed"),
        _task("phase-2/build/api", "in_progress"),
        _task("flat", "pending"),
    ]

    summary = generate_hierarchical_summary(tasks)

    assert summary["by_phase"] == {
        "phase-1": {"total": 2, "pending": 1, "in_progress": 0, "completed": 1},
        "phase-2": {"total": 1, "pending": 0, "in_progress": 1, "completed": 0},
    }
    assert summary["by_category"] == {
        "setup": {"total": 2, "pending": 1, "completed": 1},
        "build": {"total": 1, "pending": 0, "in_progress": 1},
    }
    assert summary["critical_path"] == ["phase-1/setup/db", "phase-1/setup/env", "phase-2/build/api"]


def test_flat_tasks_have_no_summary() -> None:
    assert generate_hierarchical_summary([_task("flat", "pending")]) is None
    assert get_task_hierarchical_context("flat") is None


def test_unknown_status_counts_only_in_totals() -> None:
    summary = generate_hierarchical_summary([_task("p/c/t", "on-hold")])

    assert summary["by_phase"]["p"] == {"total": 1, "pending": 0, "in_progress": 0, "completed": 0}
    assert find_next_task([_task("p/c/t", "on-hold"), _task("next", "in_progress")]).slug == "next"


def test_format_task_response_includes_hierarchy() -> None:
    response = format_task_response(_task("phase-1/setup/env", "pending"))

    assert response["hierarchical_context"] == {
        "full_path": "phase-1/setup/env",
        "parent_path": "phase-1/setup",
        "phase": "phase-1",
        "category": "setup",
        "task_name": "env",
        "depth": 3,
    }
    assert "content" not in response
