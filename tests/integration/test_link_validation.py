import asyncio

import pytest

from spec_docs.addressing.errors import DocumentAnalysisError, DocumentNotFoundError
from spec_docs.provider.memory import InMemoryDocumentProvider
from spec_docs.references.links import link_exists
from spec_docs.references.validation import (
    auto_fix_links,
    categorize_validation_error,
    validate_document_links,
    validate_single_link,
    validate_system_links,
)

_GUIDE = """# Guide

Intro @/api/auth.md#login and @#setup.

## Setup

Details in @/api/auths.md

## Usage

See @#nowhere and @/api/auth
"""


_AUTH = "# Auth\n\n## Login\n\nUse tokens.\n"
_CORPUS = {"/guide.md": _GUIDE, "/api/auth.md": _AUTH}


def _provider() -> InMemoryDocumentProvider:
    return InMemoryDocumentProvider(_CORPUS)


class BrokenListingProvider(InMemoryDocumentProvider):
    async def list_documents(self):  # type: ignore[override]
        raise RuntimeError("index unavailable")


class FailingUsageProvider(InMemoryDocumentProvider):
    async def get_section_content(self, path, slug):  # type: ignore[override]
        if slug == "usage":
            raise RuntimeError("section store offline")
        return await super().get_section_content(path, slug)


def test_document_report_counts_each_link_once() -> None:
    report = asyncio.run(validate_document_links("/guide.md", _provider()))

    assert report.document_title == "Guide"
    assert report.namespace == "root"
    assert report.total_links == 5
    assert report.valid_links == 3
    assert report.broken_links == 2
    assert report.health_score == 60
    assert report.sections_with_broken_links == ["setup", "usage"]
    assert "Focus on fixing links in: setup, usage" in report.recommendations
    assert report.recommendations[0].startswith("Warning:")


def test_broken_links_carry_suggestions() -> None:
    report = asyncio.run(validate_document_links("/guide.md", _provider()))
    broken = {link.link_text: link for link in report.links if not link.is_valid}

    missing_doc = broken["@/api/auths.md"]
    assert missing_doc.validation_error == "Document not found: /api/auths.md"
    assert missing_doc.suggestions[0] == "Try: @/api/auth.md"

    missing_section = broken["@#nowhere"]
    assert missing_section.link_type == "within-doc"
    assert "Available sections: #guide, #setup, #usage" in missing_section.suggestions


def test_valid_link_records_target() -> None:
    link = asyncio.run(validate_single_link("@/api/auth#login", "/guide.md", _provider()))

    assert link.is_valid
    assert link.link_type == "cross-doc"
    assert link.target_document == "/api/auth.md"
    assert link.target_section == "login"


def test_external_and_malformed_tokens() -> None:
    provider = _provider()

    external = asyncio.run(validate_single_link("https://example.com", "/guide.md", provider))
    assert external.is_valid and external.link_type == "external"

    malformed = asyncio.run(validate_single_link("@", "/guide.md", provider))
    assert not malformed.is_valid
    assert malformed.link_type == "malformed"
    assert malformed.validation_error.startswith("Invalid syntax:")
    assert categorize_validation_error(malformed.validation_error) == "Syntax Error"


def test_document_without_links() -> None:
    report = asyncio.run(validate_document_links("/api/auth.md", _provider()))

    assert report.total_links == 0
    assert report.health_score == 100
    assert report.recommendations == [
        "Consider adding links to related documents for better connectivity."
    ]


def test_missing_document_raises() -> None:
    with pytest.raises(DocumentNotFoundError):
        asyncio.run(validate_document_links("/nope.md", _provider()))


def test_system_report_aggregates_documents() -> None:
    report = asyncio.run(validate_system_links(_provider()))

    assert report.total_documents == 2
    assert report.total_links == 5
    assert report.overall_health_score == 60
    assert report.documents_with_issues == 1
    assert report.most_broken_documents[0].path == "/guide.md"
    assert report.most_broken_documents[0].broken_count == 2
    assert {issue.issue_type for issue in report.common_issues} == {
        "Missing Document",
        "Missing Section",
    }

    filtered = asyncio.run(validate_system_links(_provider(), "/api"))
    assert [doc.document_path for doc in filtered.document_reports] == ["/api/auth.md"]
    assert filtered.overall_health_score == 100


def test_listing_failure_raises_analysis_error() -> None:
    with pytest.raises(DocumentAnalysisError) as exc_info:
        asyncio.run(validate_system_links(BrokenListingProvider({"/a.md": "# A\n"})))
    assert exc_info.value.code == "DOCUMENT_ANALYSIS_ERROR"


def test_mid_document_failure_carries_partial_report() -> None:
    with pytest.raises(DocumentAnalysisError) as exc_info:
        asyncio.run(validate_document_links("/guide.md", FailingUsageProvider(_CORPUS)))

    partial = exc_info.value.partial_results
    assert exc_info.value.context == {"document": "/guide.md"}
    assert partial.total_links == 3
    assert partial.valid_links == 2
    assert partial.broken_links == 1
    assert partial.sections_with_broken_links == ["setup"]
    assert partial.health_score == 67


def test_system_report_skips_document_that_fails_analysis() -> None:
    provider = FailingUsageProvider(_CORPUS)

    report = asyncio.run(validate_system_links(provider))

    assert report.total_documents == 1
    assert report.document_reports[0].document_path == "/api/auth.md"


def test_link_exists() -> None:
    provider = _provider()

    assert asyncio.run(link_exists("/api/auth.md#login", provider)) is True
    assert asyncio.run(link_exists("/api/auth.md#logout", provider)) is False
    assert asyncio.run(link_exists("/nope.md", provider)) is False


def test_auto_fix_suggests_without_rewriting() -> None:
    provider = _provider()

    result = asyncio.run(auto_fix_links("/guide.md", provider, dry_run=False))

    assert result.fixes_found == 1
    assert result.fixes_applied == 0
    (fix,) = result.suggested_fixes
    assert fix.original_link == "@/api/auths.md"
    assert fix.suggested_fix == "@/api/auth.md"
    assert fix.section == "setup"
    assert provider.raw("/guide.md") == _GUIDE


def test_error_categories() -> None:
    assert categorize_validation_error("Document not found: /x.md") == "Missing Document"
    assert categorize_validation_error("Section not found: x") == "Missing Section"
    assert categorize_validation_error("no access to file") == "Access Error"
    assert categorize_validation_error("weird") == "Other"
