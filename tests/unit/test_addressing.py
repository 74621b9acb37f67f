from datetime import datetime, timezone

import pytest

from spec_docs.addressing.cache import AddressCache
from spec_docs.addressing.errors import (
    AddressingError,
    InvalidAddressError,
    NotATaskError,
    SectionNotFoundError,
)
from spec_docs.addressing.system import (
    format_document_info,
    format_section_path,
    format_task_path,
    is_task_section,
    looks_like_document_path,
    looks_like_section_reference,
    normalize_slug,
    parse_document_address,
    parse_section_address,
    parse_task_address,
    standardize_tool_params,
)
from spec_docs.provider.markdown import list_headings
from spec_docs.types import CachedDocument, DocumentMetadata

_DOC = """# Project

## Overview

## Tasks

### Write Docs

#### Notes

### Ship It

## Appendix
"""


def _document(markdown: str = _DOC) -> CachedDocument:
    return CachedDocument(
        metadata=DocumentMetadata(
            path="/project.md",
            title="Project",
            last_modified=datetime(2025, 1, 1, tzinfo=timezone.utc),
            content_hash="x",
            word_count=len(markdown.split()),
        ),
        headings=list_headings(markdown),
    )


def test_document_address_normalizes_path() -> None:
    address = parse_document_address("api//specs/auth", cache=AddressCache())

    assert address.path == "/api/specs/auth.md"
    assert address.normalized_path == address.path
    assert address.slug == "auth"
    assert address.namespace == "api/specs"


def test_top_level_document_lives_in_root_namespace() -> None:
    assert parse_document_address("/guide.md", cache=AddressCache()).namespace == "root"


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "/api/../secret.md", "/a/b.txt", "/api/", "/bad\x00.md"],
)
def test_document_address_rejects_invalid_paths(raw: str) -> None:
    with pytest.raises(InvalidAddressError) as exc_info:
        parse_document_address(raw, cache=AddressCache())
    assert exc_info.value.code == "INVALID_ADDRESS"


def test_document_address_rejects_non_strings() -> None:
    with pytest.raises(InvalidAddressError):
        parse_document_address(42, cache=AddressCache())  # type: ignore[arg-type]


def test_section_address_forms() -> None:
    cache = AddressCache()

    bare = parse_section_address("overview", "/project.md", cache=cache)
    hashed = parse_section_address("#overview", "/project.md", cache=cache)
    full = parse_section_address("/project.md#overview", cache=cache)

    assert bare.full_path == hashed.full_path == full.full_path == "/project.md#overview"
    assert full.document.path == "/project.md"


def test_section_address_hierarchical_slug_is_normalized() -> None:
    section = parse_section_address("#/api//auth/", "/project.md", cache=AddressCache())

    assert section.slug == "api/auth"
    assert section.depth == 2


@pytest.mark.parametrize(
    ("ref", "context"),
    [
        ("#overview", None),
        ("overview", None),
        ("#", "/project.md"),
        ("/project.md#", None),
        ("#Bad Slug", "/project.md"),
    ],
)
def test_section_address_errors(ref: str, context: str | None) -> None:
    with pytest.raises(InvalidAddressError):
        parse_section_address(ref, context, cache=AddressCache())


def test_format_section_path() -> None:
    cache = AddressCache()

    assert format_section_path(parse_section_address("#overview", "/project.md", cache=cache)) == "/project.md#overview"
    assert format_section_path(parse_section_address("/api/auth.md#login", cache=cache)) == "/api/auth.md#login"


def test_task_address_syntax_only_without_document() -> None:
    task = parse_task_address("anything", "/project.md", cache=AddressCache())

    assert task.is_task
    assert task.cache_key.startswith("task:")
    assert format_task_path(task) == "/project.md#anything (task)"


def test_task_address_checks_document_structure() -> None:
    cache = AddressCache()
    document = _document()

    assert parse_task_address("write-docs", "/project.md", document, cache=cache).slug == "write-docs"
    assert parse_task_address("tasks/ship-it", "/project.md", document, cache=cache).slug == "tasks/ship-it"

    with pytest.raises(NotATaskError) as not_task:
        parse_task_address("overview", "/project.md", document, cache=cache)
    assert not_task.value.code == "NOT_A_TASK"

    with pytest.raises(SectionNotFoundError) as missing:
        parse_task_address("tasks/missing", "/project.md", document, cache=cache)
    assert missing.value.context["parent_slug"] == "tasks"
    assert missing.value.context["available_sections"] == ["write-docs", "ship-it"]


def test_is_task_section_uses_tasks_range() -> None:
    document = _document()

    assert is_task_section("write-docs", document)
    assert is_task_section("notes", document)
    assert not is_task_section("appendix", document)
    assert not is_task_section("tasks", document)
    assert not is_task_section("overview", _document("# Only\n\n## Overview\n"))


def test_standardize_tool_params() -> None:
    cache = AddressCache()
    params = standardize_tool_params(
        {"document": "project", "section": "#overview", "task": "write-docs"},
        cache=cache,
    )

    assert params["document"].path == "/project.md"
    assert params["section"].full_path == "/project.md#overview"
    assert params["task"].is_task

    with pytest.raises(AddressingError) as missing:
        standardize_tool_params({"section": "x"}, cache=cache)
    assert missing.value.code == "MISSING_PARAMETER"


def test_error_payload_shape() -> None:
    error = InvalidAddressError("/x.txt", "Document path must end with .md")

    assert error.to_payload() == {
        "message": "Invalid address: /x.txt - Document path must end with .md",
        "code": "INVALID_ADDRESS",
        "context": {"address": "/x.txt", "reason": "Document path must end with .md"},
    }


def test_small_helpers() -> None:
    document = parse_document_address("/api/auth.md", cache=AddressCache())

    assert format_document_info(document) == {"slug": "auth", "title": "auth", "namespace": "api"}
    assert format_document_info(document, "Auth API")["title"] == "Auth API"
    assert normalize_slug("#overview") == "overview"
    assert looks_like_document_path("/api/auth.md")
    assert not looks_like_document_path("overview")
    assert looks_like_section_reference("#overview")
    assert looks_like_section_reference("overview")
    assert not looks_like_section_reference("api/auth")
