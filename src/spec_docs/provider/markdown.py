"""Line-oriented markdown heading and section helpers.

A section spans from its heading line up to the next heading of the same or
a shallower depth, so nested subsections belong to their parent. Fenced code
blocks are skipped when scanning for headings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from spec_docs.addressing.slugs import normalize_slug_path, split_slug_path, title_to_slug
from spec_docs.types import Heading, InsertMode

MAX_HEADING_DEPTH = 6

_ATX_HEADING = re.compile(r"^(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")


@dataclass(slots=True)
class _HeadingLine:
    line: int
    heading: Heading


def _scan(lines: list[str]) -> list[_HeadingLine]:
    found: list[_HeadingLine] = []
    fence: str | None = None
    for line_no, line in enumerate(lines):
        fence_match = _FENCE.match(line)
        if fence_match:
            marker = fence_match.group(1)[0]
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            continue
        if fence is not None:
            continue

        match = _ATX_HEADING.match(line)
        if not match:
            continue
        title = match.group(2).strip()
        try:
            slug = title_to_slug(title)
        except ValueError:
            continue

        depth = len(match.group(1))
        parent_index = None
        for previous in reversed(found):
            if previous.heading.depth < depth:
                parent_index = previous.heading.index
                break
        found.append(
            _HeadingLine(
                line=line_no,
                heading=Heading(
                    index=len(found),
                    depth=depth,
                    title=title,
                    slug=slug,
                    parent_index=parent_index,
                ),
            )
        )
    return found


def list_headings(markdown: str) -> list[Heading]:
    return [item.heading for item in _scan(markdown.splitlines())]


def heading_path(headings: list[Heading], heading: Heading) -> list[str]:
    """Slugs from the outermost ancestor down to `heading`."""

    path = [heading.slug]
    parent_index = heading.parent_index
    while parent_index is not None:
        parent = headings[parent_index]
        path.insert(0, parent.slug)
        parent_index = parent.parent_index
    return path


def find_heading(headings: list[Heading], slug: str) -> Heading | None:
    """Resolve a flat or hierarchical slug to a heading.

    Hierarchical slugs match when they equal, or are a suffix of, the
    heading's ancestor path, so `auth/login` finds `api/auth/login`.
    """

    normalized = normalize_slug_path(slug).lower()
    if not normalized:
        return None
    if "/" not in normalized:
        return next((heading for heading in headings if heading.slug == normalized), None)

    expected = split_slug_path(normalized)
    for heading in headings:
        if heading.slug != expected[-1]:
            continue
        actual = heading_path(headings, heading)
        if actual[-len(expected):] == expected:
            return heading
    return None


def section_bounds(markdown: str, heading: Heading) -> tuple[int, int]:
    """Return the `[start, end)` line range of a heading's section."""

    scanned = _scan(markdown.splitlines())
    start = scanned[heading.index].line
    end = len(markdown.splitlines())
    for item in scanned[heading.index + 1:]:
        if item.heading.depth <= heading.depth:
            end = item.line
            break
    return start, end


def read_section(markdown: str, heading: Heading) -> str:
    lines = markdown.splitlines()
    start, end = section_bounds(markdown, heading)
    return "\n".join(lines[start:end]).strip()


def section_own_text(section: str) -> str:
    """Text of a section up to its first nested heading."""

    lines = section.splitlines()
    scanned = _scan(lines)
    if len(scanned) > 1:
        lines = lines[: scanned[1].line]
    return "\n".join(lines)


def replace_section_body(markdown: str, heading: Heading, body: str) -> str:
    """Replace everything under `heading`, nested subsections included.

    Heading lines inside `body` are dropped so a replace can never change the
    document outline.
    """

    lines = markdown.splitlines()
    start, end = section_bounds(markdown, heading)
    return _splice(lines[: start + 1], _body_lines(body), lines[end:])


def insert_relative(
    markdown: str,
    ref: Heading,
    mode: InsertMode,
    depth: int | None,
    title: str,
    body: str = "",
) -> str:
    if not title.strip():
        raise ValueError("New title must be a non-empty string")

    lines = markdown.splitlines()
    start, end = section_bounds(markdown, ref)
    if mode == "append_child":
        new_depth = depth if depth is not None else min(ref.depth + 1, MAX_HEADING_DEPTH)
        position = end
    elif mode == "insert_before":
        new_depth = depth if depth is not None else ref.depth
        position = start
    elif mode == "insert_after":
        new_depth = depth if depth is not None else ref.depth
        position = end
    else:
        raise ValueError(f"Unsupported insert mode: {mode}")

    if not 1 <= new_depth <= MAX_HEADING_DEPTH:
        raise ValueError(f"Heading depth must be between 1 and {MAX_HEADING_DEPTH}")

    block = [f"{'#' * new_depth} {title.strip()}"]
    body_lines = _body_lines(body)
    if body_lines:
        block.extend(["", *body_lines])
    return _splice(lines[:position], block, lines[position:])


def word_count(text: str) -> int:
    return len(text.split())


def _body_lines(body: str) -> list[str]:
    kept = [line for line in body.strip().splitlines() if not _ATX_HEADING.match(line)]
    while kept and not kept[0].strip():
        kept.pop(0)
    while kept and not kept[-1].strip():
        kept.pop()
    return kept


def _splice(before: list[str], block: list[str], after: list[str]) -> str:
    before = list(before)
    after = list(after)
    while before and not before[-1].strip():
        before.pop()
    while after and not after[0].strip():
        after.pop(0)

    out: list[str] = []
    for part in (before, block, after):
        if not part:
            continue
        if out:
            out.append("")
        out.extend(part)
    return "\n".join(out) + "\n"
