"""Task body micro-format.

Task sections carry metadata as `Key: value` field lines in one of four
forms, listed by lookup priority:

    * Status: pending          STAR
    - Status: in_progress      DASH
    **Status:** completed      BOLD
    Status: blocked            PLAIN

`tokenize_fields` classifies every line once; lookups and rewrites work on
the resulting tokens instead of re-scanning the text per form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

from spec_docs.types import TaskStatus

STATUS_KEY = "Status"

_BOLD = re.compile(r"^\s*\*\*(?P<key>[^*:\n]+):\*\*\s*(?P<value>.*)$")
_STAR = re.compile(r"^\s*\*\s*(?P<key>[^*:\s][^:\n]*?):\s*(?P<value>.*)$")
_DASH = re.compile(r"^\s*-\s*(?P<key>[^:\s][^:\n]*?):\s*(?P<value>.*)$")
_PLAIN = re.compile(r"^\s*(?P<key>[A-Za-z][\w -]*?):\s*(?P<value>.*)$")
_ARROW_LINK = re.compile(r"^→\s*(.+)$", flags=re.MULTILINE)
_LINKED_DOCUMENT = re.compile(r"→\s*@(\S+)")
_TASK_TITLE = re.compile(r"^### (.+)$", flags=re.MULTILINE)


class FieldForm(IntEnum):
    """Field line forms; lower values win when a key appears in several forms."""

    STAR = 1
    DASH = 2
    BOLD = 3
    PLAIN = 4


@dataclass(slots=True, frozen=True)
class FieldLine:
    form: FieldForm
    key: str
    value: str
    line_no: int
    marker: str | None = None


@dataclass(slots=True)
class TaskMetadata:
    status: str
    link: str | None = None
    linked_document: str | None = None


def classify_line(line: str, line_no: int = 0) -> FieldLine | None:
    match = _BOLD.match(line)
    if match:
        return _field(FieldForm.BOLD, match, line_no)
    match = _STAR.match(line)
    if match:
        return _field(FieldForm.STAR, match, line_no, marker="*")
    match = _DASH.match(line)
    if match:
        return _field(FieldForm.DASH, match, line_no, marker="-")
    match = _PLAIN.match(line)
    if match:
        return _field(FieldForm.PLAIN, match, line_no)
    return None


def tokenize_fields(content: str) -> list[FieldLine]:
    tokens: list[FieldLine] = []
    for line_no, line in enumerate(content.splitlines()):
        token = classify_line(line, line_no)
        if token is not None and token.value:
            tokens.append(token)
    return tokens


def extract_task_field(content: str, key: str) -> str | None:
    """Value of `key` from its highest-priority form, or None."""

    if not isinstance(content, str):
        return None
    candidates = [token for token in tokenize_fields(content) if token.key == key]
    if not candidates:
        return None
    return min(candidates, key=lambda token: (token.form, token.line_no)).value


def update_task_status(
    content: str,
    new_status: str,
    note: str,
    completed_date: str,
) -> str:
    """Rewrite the first status line in place and append completion lines.

    The rewritten line keeps the form of the line it replaces. Content with no
    status line gets a bold one prepended.
    """

    completion = f"\n- Completed: {completed_date}\n- Note: {note}"
    lines = content.split("\n")
    status_token = next(
        (
            token
            for line_no, line in enumerate(lines)
            if (token := classify_line(line, line_no)) is not None
            and token.key == STATUS_KEY
            and token.value
        ),
        None,
    )
    if status_token is None:
        return f"**{STATUS_KEY}:** {new_status}\n{content}{completion}"

    lines[status_token.line_no] = format_status_line(status_token, new_status)
    return "\n".join(lines) + completion


def format_status_line(token: FieldLine, new_status: str) -> str:
    if token.form is FieldForm.BOLD:
        return f"**{STATUS_KEY}:** {new_status}"
    if token.marker is not None:
        return f"{token.marker} {STATUS_KEY}: {new_status}"
    return f"{STATUS_KEY}: {new_status}"


def extract_task_status(content: str) -> str:
    return extract_task_field(content, STATUS_KEY) or TaskStatus.PENDING.value


def extract_task_link(content: str) -> str | None:
    match = _ARROW_LINK.search(content)
    return match.group(1).strip() if match else None


def extract_linked_document(content: str) -> str | None:
    match = _LINKED_DOCUMENT.search(content)
    return match.group(1) if match else None


def extract_task_title(content: str) -> str:
    match = _TASK_TITLE.search(content)
    return match.group(1).strip() if match else "Unknown Task"


def extract_dependencies(content: str) -> list[str]:
    raw = extract_task_field(content, "Dependencies")
    if raw is None or raw.strip().lower() == "none":
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def calculate_word_count(content: str) -> int:
    return len(content.split())


def extract_task_metadata(content: str) -> TaskMetadata:
    return TaskMetadata(
        status=extract_task_status(content),
        link=extract_task_link(content) or None,
        linked_document=extract_linked_document(content) or None,
    )


def _field(
    form: FieldForm,
    match: re.Match[str],
    line_no: int,
    marker: str | None = None,
) -> FieldLine:
    return FieldLine(
        form=form,
        key=match.group("key").strip(),
        value=match.group("value").strip(),
        line_no=line_no,
        marker=marker,
    )
