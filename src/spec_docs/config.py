"""Configuration models for the document addressing core."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field


class AddressingConfig(BaseModel):
    """Configures the batch-scoped address cache."""

    batch_timeout_seconds: float = Field(default=5.0, gt=0.0)
    max_cache_entries: int = Field(default=1000, ge=1)


class ReferenceConfig(BaseModel):
    """Configures recursive reference loading and its safety bounds."""

    extraction_depth: int = Field(default=3, ge=1, le=5)
    max_total_nodes: int = Field(default=1000, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class TaskConfig(BaseModel):
    """Configures how the Tasks section is located and created."""

    tasks_heading: str = Field(default="Tasks", min_length=1)
    tasks_section_body: str = "Task list for this document."


class CoreConfig(BaseModel):
    addressing: AddressingConfig = Field(default_factory=AddressingConfig)
    references: ReferenceConfig = Field(default_factory=ReferenceConfig)
    tasks: TaskConfig = Field(default_factory=TaskConfig)


_ENV_KEYS = {
    "REFERENCE_EXTRACTION_DEPTH": ("references", "extraction_depth"),
    "REFERENCE_MAX_NODES": ("references", "max_total_nodes"),
    "REFERENCE_TIMEOUT_SECONDS": ("references", "timeout_seconds"),
    "ADDRESS_CACHE_TIMEOUT_SECONDS": ("addressing", "batch_timeout_seconds"),
}


def load_config(env: Mapping[str, str] | None = None) -> CoreConfig:
    """Build a `CoreConfig` from environment variables.

    Unset or blank variables fall back to model defaults. Values are validated
    by pydantic, so an out-of-range depth raises `ValidationError`.
    """

    source = env if env is not None else os.environ
    sections: dict[str, dict[str, str]] = {}
    for key, (section, field) in _ENV_KEYS.items():
        raw = source.get(key, "").strip()
        if raw:
            sections.setdefault(section, {})[field] = raw
    return CoreConfig.model_validate(sections)
