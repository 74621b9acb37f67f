"""Link health reports for single documents and whole corpora.

Broken links are reported as data. A missing document raises; a provider
failure mid-document or while listing documents raises `DocumentAnalysisError`.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from spec_docs.addressing.errors import DocumentAnalysisError, DocumentNotFoundError
from spec_docs.addressing.slugs import path_to_namespace, path_to_slug
from spec_docs.provider.base import DocumentProvider
from spec_docs.provider.markdown import section_own_text
from spec_docs.references.extractor import ReferenceExtractor
from spec_docs.references.links import parse_link, resolve_link, validate_link
from spec_docs.types import LinkCheck, LinkType

logger = logging.getLogger(__name__)

SYNTAX_HINT = "Check link syntax: use @/path/doc.md or @#section format"
MAX_COMMON_ISSUES = 5
MAX_BROKEN_DOCUMENTS = 5
MAX_ISSUE_EXAMPLES = 3


class LinkValidationResult(BaseModel):
    link_text: str
    is_valid: bool = False
    link_type: LinkType = "malformed"
    target_document: str | None = None
    target_section: str | None = None
    validation_error: str | None = None
    suggestions: list[str] | None = None


class DocumentLinkReport(BaseModel):
    document_path: str
    document_title: str
    namespace: str
    total_links: int = 0
    valid_links: int = 0
    broken_links: int = 0
    external_links: int = 0
    links: list[LinkValidationResult] = Field(default_factory=list)
    sections_with_broken_links: list[str] = Field(default_factory=list)
    health_score: int = 100
    recommendations: list[str] = Field(default_factory=list)


class BrokenDocument(BaseModel):
    path: str
    title: str
    broken_count: int


class IssueSummary(BaseModel):
    issue_type: str
    count: int
    examples: list[str]


class SystemLinkReport(BaseModel):
    total_documents: int
    total_links: int
    overall_health_score: int
    documents_with_issues: int
    most_broken_documents: list[BrokenDocument]
    common_issues: list[IssueSummary]
    document_reports: list[DocumentLinkReport]


class SuggestedFix(BaseModel):
    original_link: str
    suggested_fix: str
    reason: str
    section: str


class AutoFixResult(BaseModel):
    fixes_found: int
    fixes_applied: int = 0
    suggested_fixes: list[SuggestedFix] = Field(default_factory=list)


def health_score(valid: int, total: int) -> int:
    if total == 0:
        return 100
    return round(100 * valid / total)


async def validate_single_link(
    token: str,
    context_path: str,
    provider: DocumentProvider,
) -> LinkValidationResult:
    result = LinkValidationResult(link_text=token)
    parsed = parse_link(token, context_path)
    if parsed.type == "external":
        result.link_type = "external"
        result.is_valid = True
        return result

    try:
        target = resolve_link(parsed, context_path)
    except ValueError as exc:
        result.validation_error = f"Invalid syntax: {exc}"
        result.suggestions = [SYNTAX_HINT]
        return result

    result.link_type = parsed.type
    check = await validate_link(target, provider)
    result.is_valid = check.valid
    if check.valid:
        document, _, section = target.partition("#")
        result.target_document = document
        result.target_section = section or None
        return result

    result.validation_error = check.error or "Validation failed"
    result.suggestions = await _suggestions(target, check, provider)
    return result


async def validate_document_links(path: str, provider: DocumentProvider) -> DocumentLinkReport:
    """Validate every `@reference` in a document, section by section.

    A failure part way through raises `DocumentAnalysisError` whose
    `partial_results` is the report for the sections already checked.
    """

    document = await provider.get_document(path)
    if document is None:
        raise DocumentNotFoundError(path)

    report = DocumentLinkReport(
        document_path=path,
        document_title=document.metadata.title,
        namespace=path_to_namespace(path),
    )

    extractor = ReferenceExtractor()
    broken_sections: dict[str, None] = {}
    try:
        for heading in document.headings:
            content = await provider.get_section_content(path, heading.slug) or ""
            for ref in extractor.extract_references(section_own_text(content)):
                link = await validate_single_link(ref, path, provider)
                _record(report, link, heading.slug, broken_sections)
    except Exception as exc:
        raise DocumentAnalysisError(
            f"Link analysis failed for {path}: {exc}",
            {"document": path},
            partial_results=_summarize(report, broken_sections),
        ) from exc

    return _summarize(report, broken_sections)


def _record(
    report: DocumentLinkReport,
    link: LinkValidationResult,
    section_slug: str,
    broken_sections: dict[str, None],
) -> None:
    report.links.append(link)
    if link.link_type == "external":
        report.external_links += 1
        report.valid_links += 1
    elif link.is_valid:
        report.valid_links += 1
    else:
        report.broken_links += 1
        broken_sections.setdefault(section_slug, None)


def _summarize(report: DocumentLinkReport, broken_sections: dict[str, None]) -> DocumentLinkReport:
    report.total_links = len(report.links)
    report.sections_with_broken_links = list(broken_sections)
    report.health_score = health_score(report.valid_links, report.total_links)
    report.recommendations = document_recommendations(report)
    return report


async def validate_system_links(
    provider: DocumentProvider,
    path_filter: str | None = None,
) -> SystemLinkReport:
    try:
        documents = await provider.list_documents()
    except Exception as exc:
        raise DocumentAnalysisError(
            f"Failed to get document list: {exc}",
            {"path_filter": path_filter},
        ) from exc
    if path_filter:
        documents = [info for info in documents if info.path.startswith(path_filter)]

    reports: list[DocumentLinkReport] = []
    issues: dict[str, list[str]] = {}
    for info in documents:
        try:
            report = await validate_document_links(info.path, provider)
        except Exception as exc:
            logger.warning(f"Failed to validate links in {info.path}: {exc}")
            continue
        reports.append(report)
        for link in report.links:
            if not link.is_valid and link.validation_error:
                issues.setdefault(categorize_validation_error(link.validation_error), []).append(
                    link.link_text
                )

    total_links = sum(report.total_links for report in reports)
    total_valid = sum(report.valid_links for report in reports)
    broken = sorted(
        (report for report in reports if report.broken_links > 0),
        key=lambda report: report.broken_links,
        reverse=True,
    )
    common = sorted(
        (
            IssueSummary(
                issue_type=issue_type,
                count=len(examples),
                examples=examples[:MAX_ISSUE_EXAMPLES],
            )
            for issue_type, examples in issues.items()
        ),
        key=lambda issue: issue.count,
        reverse=True,
    )

    return SystemLinkReport(
        total_documents=len(reports),
        total_links=total_links,
        overall_health_score=health_score(total_valid, total_links),
        documents_with_issues=len(broken),
        most_broken_documents=[
            BrokenDocument(
                path=report.document_path,
                title=report.document_title,
                broken_count=report.broken_links,
            )
            for report in broken[:MAX_BROKEN_DOCUMENTS]
        ],
        common_issues=common[:MAX_COMMON_ISSUES],
        document_reports=reports,
    )


async def auto_fix_links(
    path: str,
    provider: DocumentProvider,
    dry_run: bool = True,
) -> AutoFixResult:
    """Collect `Try:` replacements for broken links.

    Content is never rewritten, whatever `dry_run` says; `fixes_applied`
    is always 0.
    """

    document = await provider.get_document(path)
    if document is None:
        raise DocumentNotFoundError(path)

    extractor = ReferenceExtractor()
    fixes: list[SuggestedFix] = []
    for heading in document.headings:
        content = await provider.get_section_content(path, heading.slug) or ""
        for ref in extractor.extract_references(section_own_text(content)):
            link = await validate_single_link(ref, path, provider)
            if link.is_valid or not link.suggestions:
                continue
            for suggestion in link.suggestions:
                if suggestion.startswith("Try:"):
                    fixes.append(
                        SuggestedFix(
                            original_link=ref,
                            suggested_fix=suggestion.removeprefix("Try:").strip(),
                            reason=link.validation_error or "Link validation failed",
                            section=heading.slug,
                        )
                    )

    if not dry_run and fixes:
        logger.info(f"Found {len(fixes)} link fixes for {path}; automatic rewriting is not supported")
    return AutoFixResult(fixes_found=len(fixes), suggested_fixes=fixes)


def document_recommendations(report: DocumentLinkReport) -> list[str]:
    recommendations: list[str] = []
    if report.health_score < 50:
        recommendations.append("Critical: Many broken links detected. Review and fix immediately.")
    elif report.health_score < 80:
        recommendations.append(
            "Warning: Some broken links found. Consider fixing for better navigation."
        )
    elif report.health_score == 100 and report.total_links > 0:
        recommendations.append("Excellent: All links are valid and working properly.")

    if report.total_links == 0:
        recommendations.append("Consider adding links to related documents for better connectivity.")
    elif report.total_links < 3:
        recommendations.append("Consider adding more links to improve document interconnectedness.")

    if report.sections_with_broken_links:
        recommendations.append(
            f"Focus on fixing links in: {', '.join(report.sections_with_broken_links[:3])}"
        )
    if report.external_links > report.total_links * 0.5:
        recommendations.append(
            "High external link ratio. Consider linking to more internal documentation."
        )
    return recommendations


def categorize_validation_error(error: str) -> str:
    if "Document not found" in error:
        return "Missing Document"
    if "Section not found" in error:
        return "Missing Section"
    if "Invalid syntax" in error or "malformed" in error:
        return "Syntax Error"
    if "permission" in error or "access" in error:
        return "Access Error"
    return "Other"


async def _suggestions(target: str, check: LinkCheck, provider: DocumentProvider) -> list[str]:
    suggestions: list[str] = []
    error = check.error or ""
    document_path, _, _ = target.partition("#")

    if "Document not found" in error:
        try:
            documents = await provider.list_documents()
        except Exception as exc:
            logger.warning(f"Could not list documents for suggestions: {exc}")
            documents = []
        needle = document_path.lower().lstrip("/").removesuffix(".md")
        stem = path_to_slug(document_path).lower()
        similar = [
            info.path
            for info in documents
            if needle in info.path.lower()
            or info.path.lower().lstrip("/").removesuffix(".md") in needle
            or path_to_slug(info.path).lower() == stem
        ]
        if similar:
            suggestions.append(f"Try: @{similar[0]}")
            if len(similar) > 1:
                suggestions.append(
                    f"Other options: {', '.join(f'@{path}' for path in similar[1:3])}"
                )
        suggestions.append("Check the document path and ensure the file exists")
        suggestions.append("Use absolute paths starting with / (e.g., @/api/specs/doc.md)")

    if "Section not found" in error:
        suggestions.append("Check the section slug spelling and format")
        suggestions.append("Section slugs use lowercase with hyphens (e.g., #user-authentication)")
        if check.document_exists:
            document = await provider.get_document(document_path)
            if document is not None and document.headings:
                available = ", ".join(f"#{heading.slug}" for heading in document.headings[:3])
                suggestions.append(f"Available sections: {available}")

    if not suggestions:
        suggestions.append(
            "Verify link syntax: @/path/doc.md for documents, @#section for within-document"
        )
    return suggestions
