import logging

import pytest

from spec_docs.references.extractor import (
    ReferenceExtractor,
    extract_references,
    normalize_references,
    slugify_fragment,
)


def test_extracts_all_forms_in_order_without_duplicates() -> None:
    content = (
        "See @/api/auth.md#jwt-tokens, then @#setup.\n"
        "Background in @/guides/intro and again @#setup\n"
        "Mail user@example.com is not a reference."
    )

    assert extract_references(content) == ["@/api/auth.md#jwt-tokens", "@#setup", "@/guides/intro"]


def test_extract_ignores_non_string_content() -> None:
    assert extract_references(None) == []
    assert ReferenceExtractor().extract_references(42) == []


def test_normalize_within_document_reference() -> None:
    (ref,) = normalize_references(["@#setup"], "guide.md")

    assert ref.resolved_path == "/guide.md#setup"
    assert ref.document_path == "/guide.md"
    assert ref.section_slug == "setup"


def test_normalize_cross_document_references() -> None:
    whole, section = normalize_references(["@/guides//intro", "@/api/auth.md#JWT Tokens"], "/guide.md")

    assert whole.resolved_path == "/guides/intro.md"
    assert whole.section_slug is None
    assert section.document_path == "/api/auth.md"
    assert section.section_slug == "jwt-tokens"
    assert section.resolved_path == "/api/auth.md#jwt-tokens"


def test_hierarchical_fragment_is_slugified_per_component() -> None:
    assert slugify_fragment("Parent Topic/Child Item") == "parent-topic/child-item"


def test_invalid_references_are_skipped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        refs = normalize_references(["no-at-sign", "", "@#ok"], "/guide.md")

    assert [ref.section_slug for ref in refs] == ["ok"]
    assert "no-at-sign" in caplog.text


def test_normalize_requires_context_path() -> None:
    with pytest.raises(ValueError, match="Context path is required"):
        normalize_references(["@#setup"], "  ")
    assert normalize_references("@#setup", "/guide.md") == []


@pytest.mark.parametrize(
    ("ref", "resolved", "section"),
    [
        ("@#Mixed_Case", "/guide.md#mixed_case", "mixed_case"),
        ("@#", "/guide.md", None),
        ("@/doc#Sec", "/doc.md#sec", "sec"),
        ("@/doc.md#", "/doc.md", None),
    ],
)
def test_resolved_path_is_document_path_plus_section_slug(
    ref: str,
    resolved: str,
    section: str | None,
) -> None:
    (normalized,) = normalize_references([ref], "/guide.md")

    assert normalized.resolved_path == resolved
    assert normalized.section_slug == section
    expected = normalized.document_path
    if normalized.section_slug:
        expected = f"{expected}#{normalized.section_slug}"
    assert normalized.resolved_path == expected
