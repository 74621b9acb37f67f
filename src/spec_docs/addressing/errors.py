"""Error taxonomy for addressing and task operations.

Every error carries a machine-readable `code` and a `context` mapping so
callers can render recovery guidance (available sections, parent slug, ...)
without another round trip to the provider.
"""

from __future__ import annotations

from typing import Any


class AddressingError(Exception):
    """Base error for all addressing and task failures."""

    def __init__(
        self,
        message: str,
        code: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.context: dict[str, Any] = dict(context or {})

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "context": self.context}


class DocumentNotFoundError(AddressingError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}", "DOCUMENT_NOT_FOUND", {"path": path})


class SectionNotFoundError(AddressingError):
    def __init__(
        self,
        slug: str,
        document_path: str,
        *,
        parent_slug: str | None = None,
        available_sections: list[str] | None = None,
    ) -> None:
        context: dict[str, Any] = {"slug": slug, "document_path": document_path}
        if parent_slug is not None:
            context["parent_slug"] = parent_slug
        if available_sections is not None:
            context["available_sections"] = available_sections
        super().__init__(
            f"Section not found: {slug} in {document_path}",
            "SECTION_NOT_FOUND",
            context,
        )


class InvalidAddressError(AddressingError):
    def __init__(self, address: str, reason: str) -> None:
        super().__init__(
            f"Invalid address: {address} - {reason}",
            "INVALID_ADDRESS",
            {"address": address, "reason": reason},
        )


class NotATaskError(AddressingError):
    """The section exists but does not live under the Tasks heading."""

    def __init__(self, slug: str, document_path: str) -> None:
        super().__init__(
            f"Section {slug} in {document_path} is not a task",
            "NOT_A_TASK",
            {"slug": slug, "document_path": document_path},
        )


class TaskNotFoundError(AddressingError):
    def __init__(self, slug: str, document_path: str) -> None:
        super().__init__(
            f"Task not found: {slug}",
            "TASK_NOT_FOUND",
            {"document": document_path, "task": slug},
        )


class TaskCreateError(AddressingError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TASK_CREATE_FAILED", context)


class TaskEditError(AddressingError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TASK_EDIT_FAILED", context)


class TaskListError(AddressingError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TASK_LIST_FAILED", context)


class TaskCompleteError(AddressingError):
    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TASK_COMPLETE_FAILED", context)


class DocumentAnalysisError(AddressingError):
    """Analysis failed part way; `partial_results` holds what was computed."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        partial_results: Any = None,
    ) -> None:
        super().__init__(message, "DOCUMENT_ANALYSIS_ERROR", context)
        self.partial_results = partial_results
